"""
Playback length detection for uploaded audio.
"""
import io
import math
from typing import BinaryIO

from mutagen import File as MutagenFile, MutagenError

from music_catalog.logger import get_logger
from music_catalog.exceptions import AudioProbeError

logger = get_logger("audio_probe")


def probe_duration(fileobj: BinaryIO, filename: str = "") -> int:
    """
    Read an audio file's playback length.

    The stream is rewound before returning so it can still be uploaded.

    Returns:
        Duration in whole seconds, rounded half up

    Raises:
        AudioProbeError: If the format is unknown or carries no length
    """
    fileobj.seek(0)
    buffer = io.BytesIO(fileobj.read())
    fileobj.seek(0)

    try:
        audio = MutagenFile(buffer)
    except MutagenError as e:
        logger.warning(f"Could not parse audio file {filename}: {e}")
        raise AudioProbeError("Could not read audio file", str(e))

    length = getattr(getattr(audio, "info", None), "length", None)
    if not length or length <= 0:
        raise AudioProbeError(f"Could not determine the duration of {filename or 'audio file'}")

    duration = int(math.floor(length + 0.5))
    logger.debug(f"Probed {filename}: {length:.3f}s -> {duration}s")
    return duration
