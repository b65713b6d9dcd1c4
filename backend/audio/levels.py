"""Audio level utilities."""
import numpy as np

from constants import LEVEL_CEILING_DB, LEVEL_FLOOR_DB


def rms_dbfs(block: np.ndarray) -> float:
    """
    RMS level of a float32 block in dBFS, clamped to the level range.

    Silence (or an empty block) reads as LEVEL_FLOOR_DB.
    No resampling. Channels are averaged together.
    """
    if block.size == 0:
        return LEVEL_FLOOR_DB

    rms = float(np.sqrt(np.mean(np.square(block, dtype=np.float64))))
    if rms <= 0.0:
        return LEVEL_FLOOR_DB

    db = 20.0 * np.log10(rms)
    return float(np.clip(db, LEVEL_FLOOR_DB, LEVEL_CEILING_DB))
