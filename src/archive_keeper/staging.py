"""Default staging directory detection."""

import os
from pathlib import Path, PurePath, PureWindowsPath
from typing import Optional

WINDOWS_FALLBACK = PureWindowsPath("C:\\staging")
POSIX_FALLBACK = Path("/tmp/staging")


def detect_default_staging_directory(platform_name: Optional[str] = None) -> PurePath:
    """Return the directory archives are placed in when no path is configured.

    On Windows this is ``%SYSTEMDRIVE%\\ProgramData\\staging`` when the
    ProgramData directory exists, ``C:\\staging`` otherwise. On other
    platforms it is ``/var/staging`` when ``/var`` exists, ``/tmp/staging``
    otherwise.

    Args:
        platform_name: Value to use instead of ``os.name``

    Returns:
        Staging directory path (not created)
    """
    platform_name = platform_name or os.name

    if platform_name == "nt":
        system_drive = os.environ.get("SYSTEMDRIVE", "C:")
        program_data = PureWindowsPath(f"{system_drive}\\ProgramData")
        if os.path.isdir(str(program_data)):
            return program_data / "staging"
        return WINDOWS_FALLBACK

    base = Path("/var")
    if base.is_dir():
        return base / "staging"
    return POSIX_FALLBACK
