"""Archive extraction into a target directory."""

import logging
import shlex
import shutil
import subprocess
import tarfile
import zipfile
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Set, Union

import py7zr

from .common import ExtractionError, OwnershipError, UnsupportedArchiveError

logger = logging.getLogger(__name__)

Owner = Optional[Union[int, str]]


class ArchiveFormat(Enum):
    """Archive formats extracted without an external command."""
    ZIP = "zip"
    TAR = "tar"
    TAR_GZ = "tar.gz"
    TGZ = "tgz"
    TAR_BZ2 = "tar.bz2"
    TBZ2 = "tbz2"
    TAR_XZ = "tar.xz"
    TXZ = "txz"
    SEVEN_ZIP = "7z"


# Compound extensions come first so .tar.gz is not read as .gz
EXTENSION_MAP = {
    '.tar.gz': ArchiveFormat.TAR_GZ,
    '.tar.bz2': ArchiveFormat.TAR_BZ2,
    '.tar.xz': ArchiveFormat.TAR_XZ,
    '.tgz': ArchiveFormat.TGZ,
    '.tbz2': ArchiveFormat.TBZ2,
    '.txz': ArchiveFormat.TXZ,
    '.tar': ArchiveFormat.TAR,
    '.zip': ArchiveFormat.ZIP,
    '.7z': ArchiveFormat.SEVEN_ZIP,
}

TAR_FORMATS = {
    ArchiveFormat.TAR, ArchiveFormat.TAR_GZ, ArchiveFormat.TGZ,
    ArchiveFormat.TAR_BZ2, ArchiveFormat.TBZ2, ArchiveFormat.TAR_XZ, ArchiveFormat.TXZ,
}


def detect_format(archive_path: Path) -> Optional[ArchiveFormat]:
    """Detect archive format from file extension.

    Args:
        archive_path: Path to archive

    Returns:
        Archive format or None if not supported
    """
    name = archive_path.name.lower()
    for ext, fmt in EXTENSION_MAP.items():
        if name.endswith(ext):
            return fmt
    return None


def is_safe_path(base_dir: Path, member_path: str) -> bool:
    """Check that an archive member stays inside ``base_dir``."""
    base = base_dir.resolve()
    target_path = (base / member_path).resolve()
    return target_path == base or base in target_path.parents


def _owner_id(value: Owner) -> Owner:
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return value


def apply_ownership(paths: Iterable[Path], user: Owner = None, group: Owner = None) -> None:
    """Hand extracted paths to ``user``/``group``.

    Raises:
        OwnershipError: If a path cannot be changed; already extracted
            content is left in place
    """
    user, group = _owner_id(user), _owner_id(group)
    for path in paths:
        if path.is_symlink():
            logger.debug(f"Skipping ownership change on symlink {path}")
            continue
        try:
            shutil.chown(path, user=user, group=group)
        except (LookupError, OSError) as e:
            raise OwnershipError(
                f"Unable to set ownership of {path} to {user}:{group}: {e}",
                path=str(path),
                user=user,
                group=group,
            ) from e


def _with_parents(paths: Iterable[Path], base_dir: Path) -> List[Path]:
    """Add the intermediate directories between ``base_dir`` and each path."""
    result: Set[Path] = set()
    for path in paths:
        result.add(path)
        for parent in path.parents:
            if parent == base_dir or base_dir not in parent.parents:
                break
            result.add(parent)
    return sorted(result)


class Extractor:
    """Unpacks an archive with a built-in handler or a custom command."""

    def __init__(
        self,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.runner = runner
        self.which = which

    def extract(
        self,
        archive_path: Path,
        target_dir: Path,
        command: Optional[str] = None,
        flags: Sequence[str] = (),
        user: Owner = None,
        group: Owner = None,
    ) -> List[Path]:
        """Extract an archive and optionally hand the result to an owner.

        Args:
            archive_path: Archive to extract
            target_dir: Directory to extract into, created if missing
            command: Custom command; ``%s`` is replaced by the archive path,
                otherwise flags and the archive path are appended
            flags: Extra arguments for the custom command
            user: Owner for extracted content
            group: Group for extracted content

        Returns:
            Paths created by the extraction

        Raises:
            UnsupportedArchiveError: If no command is given and the format is unknown
            ExtractionError: If the archive is corrupt or the command fails
            OwnershipError: If ownership cannot be applied after extraction
        """
        archive_path = Path(archive_path)
        target_dir = Path(target_dir)
        target_dir.mkdir(parents=True, exist_ok=True)

        logger.info(f"Extracting {archive_path} to {target_dir}")

        if command:
            extracted = self._run_command(archive_path, target_dir, command, flags)
        else:
            archive_format = detect_format(archive_path)
            if archive_format is None:
                raise UnsupportedArchiveError(
                    f"Unsupported archive format: {archive_path.name}",
                    archive=str(archive_path),
                )
            extracted = self._extract_builtin(archive_path, target_dir, archive_format)

        logger.debug(f"Extracted {len(extracted)} path(s) from {archive_path.name}")

        if user is not None or group is not None:
            apply_ownership(extracted, user, group)

        return extracted

    def _extract_builtin(self, archive_path: Path, target_dir: Path, archive_format: ArchiveFormat) -> List[Path]:
        try:
            if archive_format is ArchiveFormat.ZIP:
                members = self._extract_zip(archive_path, target_dir)
            elif archive_format is ArchiveFormat.SEVEN_ZIP:
                members = self._extract_7z(archive_path, target_dir)
            else:
                members = self._extract_tar(archive_path, target_dir)
        except (zipfile.BadZipFile, tarfile.TarError, py7zr.Bad7zFile, EOFError) as e:
            raise ExtractionError(
                f"Failed to extract {archive_path.name}: {e}",
                archive=str(archive_path),
            ) from e

        return _with_parents((target_dir / member for member in members), target_dir)

    def _extract_zip(self, archive_path: Path, target_dir: Path) -> List[str]:
        extracted = []
        with zipfile.ZipFile(archive_path, 'r') as zip_ref:
            for info in zip_ref.infolist():
                if not is_safe_path(target_dir, info.filename):
                    logger.warning(f"Skipping unsafe path: {info.filename}")
                    continue
                zip_ref.extract(info, target_dir)
                extracted.append(info.filename.rstrip('/'))
        return extracted

    def _extract_tar(self, archive_path: Path, target_dir: Path) -> List[str]:
        extracted = []
        with tarfile.open(archive_path, 'r:*') as tar_ref:
            for member in tar_ref.getmembers():
                if not is_safe_path(target_dir, member.name):
                    logger.warning(f"Skipping unsafe path: {member.name}")
                    continue
                if (member.issym() or member.islnk()) and not is_safe_path(
                    target_dir, str(Path(member.name).parent / member.linkname)
                ):
                    logger.warning(f"Skipping link pointing outside target: {member.name} -> {member.linkname}")
                    continue
                tar_ref.extract(member, target_dir)
                extracted.append(member.name)
        return extracted

    def _extract_7z(self, archive_path: Path, target_dir: Path) -> List[str]:
        with py7zr.SevenZipFile(archive_path, mode='r') as archive:
            names = archive.getnames()
            safe = [name for name in names if is_safe_path(target_dir, name)]
            for name in set(names) - set(safe):
                logger.warning(f"Skipping unsafe path: {name}")
            archive.extract(path=target_dir, targets=safe)
        return safe

    def _run_command(self, archive_path: Path, target_dir: Path, command: str, flags: Sequence[str]) -> List[Path]:
        if '%s' in command:
            argv = shlex.split(command.replace('%s', shlex.quote(str(archive_path))))
        else:
            argv = [*shlex.split(command), *flags, str(archive_path)]

        executable = self.which(argv[0])
        if executable is None:
            raise ExtractionError(f"Extraction command '{argv[0]}' not found", command=command)
        argv[0] = executable

        before = set(target_dir.rglob('*'))
        logger.debug(f"Running {' '.join(argv)} in {target_dir}")

        try:
            result = self.runner(argv, cwd=target_dir, capture_output=True, text=True, check=False)
        except OSError as e:
            raise ExtractionError(f"Unable to run extraction command: {e}", command=command) from e

        if result.returncode != 0:
            output = "\n".join(part for part in (result.stdout, result.stderr) if part).strip()
            raise ExtractionError(
                f"Extraction of {archive_path.name} failed with exit code {result.returncode}: {output}",
                archive=str(archive_path),
                returncode=result.returncode,
                output=output,
            )

        return sorted(set(target_dir.rglob('*')) - before)
