"""Convergence of an archive file towards its desired state.

One :class:`Reconciler` call observes the filesystem, derives an
:class:`ArchiveState` from three facts, picks an :class:`Action` and runs it:

* is the marker file (``creates``) present,
* is the archive present at ``path``,
* does the archive match the expected checksum.

Nothing observed is kept between calls; every convergence re-reads the
filesystem. Concurrent convergence of the same archive path must be
serialized by the caller.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from .common import ChecksumType, ConfigurationError, LogContext
from .extractor import Extractor
from .fetcher import Fetcher
from .oracle import ChecksumOracle
from .resource import ArchiveResource

logger = logging.getLogger(__name__)

NOT_EXTRACTED = "archive not extracted"


class Ensure(Enum):
    """Requested presence of the archive."""
    PRESENT = "present"
    ABSENT = "absent"


class ArchiveState(Enum):
    """Combination of marker, archive and checksum facts."""
    MISSING = "missing"          # no archive, no marker
    MISMATCHED = "mismatched"    # archive present, checksum differs
    DOWNLOADED = "downloaded"    # archive valid, no marker
    EXTRACTED = "extracted"      # archive valid, marker present
    DANGLING = "dangling"        # marker present, archive gone


class Action(Enum):
    """Corrective step chosen for one convergence call."""
    NONE = "none"
    CREATE = "create"
    EXTRACT = "extract"
    CLEANUP = "cleanup"
    DESTROY = "destroy"


@dataclass(frozen=True)
class ConvergeResult:
    state: ArchiveState
    action: Action
    changed: bool


class ObservedState:
    """Filesystem facts for a single convergence call.

    The local checksum is computed at most once, and only when a
    comparison actually needs it.
    """

    def __init__(
        self,
        resource: ArchiveResource,
        expected_checksum: Callable[[], str],
        digest: Callable[[Path, ChecksumType], str],
    ) -> None:
        self.resource = resource
        self.archive_exists = resource.path.exists()
        self.marker_exists = resource.creates is not None and resource.creates.exists()
        self._expected_checksum = expected_checksum
        self._digest = digest
        self._local_checksum: Optional[str] = None
        self._checksum_matches: Optional[bool] = None

    @property
    def local_checksum(self) -> Optional[str]:
        """Digest of the archive if it has been computed."""
        return self._local_checksum

    @property
    def checksum_matches(self) -> bool:
        if self._checksum_matches is None:
            self._checksum_matches = self._compare_checksum()
        return self._checksum_matches

    def _compare_checksum(self) -> bool:
        if not self.archive_exists:
            return False
        if self.resource.checksum_type is ChecksumType.NONE:
            return True

        self._local_checksum = self._digest(self.resource.path, self.resource.checksum_type)
        return self._local_checksum == self._expected_checksum()

    @property
    def state(self) -> ArchiveState:
        if not self.archive_exists:
            return ArchiveState.DANGLING if self.marker_exists else ArchiveState.MISSING
        if not self.checksum_matches:
            return ArchiveState.MISMATCHED
        return ArchiveState.EXTRACTED if self.marker_exists else ArchiveState.DOWNLOADED


def plan(state: ArchiveState, ensure: Ensure, sync_marker: bool = False) -> Action:
    """Choose the action that moves ``state`` towards ``ensure``.

    Args:
        state: Observed archive state
        ensure: Requested presence
        sync_marker: Extraction is requested, a marker is configured and it
            is absent; a valid archive is then extracted again

    Returns:
        Action to run
    """
    if ensure is Ensure.ABSENT:
        if state in (ArchiveState.DOWNLOADED, ArchiveState.EXTRACTED):
            return Action.DESTROY
        if state is ArchiveState.DANGLING:
            return Action.CLEANUP
        return Action.NONE

    if state in (ArchiveState.MISSING, ArchiveState.MISMATCHED):
        return Action.CREATE
    if state is ArchiveState.DANGLING:
        return Action.CLEANUP
    if state is ArchiveState.DOWNLOADED and sync_marker:
        return Action.EXTRACT
    return Action.NONE


class Reconciler:
    """Fetches, verifies, extracts and cleans up one archive."""

    def __init__(
        self,
        resource: ArchiveResource,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[Extractor] = None,
        oracle: Optional[ChecksumOracle] = None,
    ) -> None:
        self.resource = resource
        self.fetcher = fetcher or Fetcher()
        self.extractor = extractor or Extractor()
        self.oracle = oracle or ChecksumOracle(self.fetcher.transports)
        # Digest from the last checksum(store=True) call
        self.archive_checksum: Optional[str] = None
        self._remote_checksum: Optional[str] = None

    def expected_checksum(self) -> str:
        """Explicit checksum, else the one published at ``checksum_url``.

        Raises:
            ConfigurationError: If neither is configured
        """
        explicit = self.resource.explicit_checksum
        if explicit:
            return explicit

        if self.resource.checksum_url:
            if self._remote_checksum is None:
                self._remote_checksum = self.oracle.remote_checksum(
                    self.resource.checksum_url, self.resource.download_settings
                )
            return self._remote_checksum

        raise ConfigurationError(
            f"No checksum or checksum_url configured for {self.resource.path} "
            f"with checksum_type {self.resource.checksum_type.value}",
            path=str(self.resource.path),
        )

    def observe(self) -> ObservedState:
        return ObservedState(self.resource, self.expected_checksum, self.oracle.local_checksum)

    def extracted(self) -> bool:
        return self.resource.creates is not None and self.resource.creates.exists()

    def exists(self, observed: Optional[ObservedState] = None) -> bool:
        """Whether the archive is in place.

        A present marker with a missing archive counts as existing: the
        content was extracted and the archive cleaned up, so it is not
        downloaded again. Cleanup is re-run in that case.
        """
        observed = observed or self.observe()
        if not observed.marker_exists:
            return self.checksum(observed=observed)
        if observed.archive_exists:
            return self.checksum(observed=observed)

        self.cleanup()
        return True

    def create(self, observed: Optional[ObservedState] = None) -> None:
        """Download when needed, extract, and always clean up afterwards.

        Args:
            observed: State already observed in this convergence call; its
                digest is reused instead of reading the archive again
        """
        try:
            if not self.checksum(observed=observed):
                self.transfer_download()
            self.extract()
        finally:
            self.cleanup()

    def destroy(self) -> bool:
        """Remove the archive file; extracted content is left alone.

        Returns:
            True if a file was removed
        """
        path = self.resource.path
        if not path.exists():
            return False

        path.unlink()
        logger.info(f"Removed archive {path}")
        return True

    def checksum(self, store: bool = True, observed: Optional[ObservedState] = None) -> bool:
        """Whether the archive exists and matches the expected checksum."""
        observed = observed or self.observe()
        matches = observed.checksum_matches
        if store and observed.local_checksum is not None:
            self.archive_checksum = observed.local_checksum
        return matches

    def cleanup(self) -> bool:
        """Remove the archive, but only when both cleanup and extract are enabled."""
        if not self.resource.cleanup_enabled:
            return False

        logger.debug(f"Cleanup archive {self.resource.path}")
        return self.destroy()

    def extract(self) -> None:
        if not self.resource.extract:
            return
        if self.resource.extract_path is None:
            raise ConfigurationError("missing archive extract_path", path=str(self.resource.path))

        self.extractor.extract(
            self.resource.path,
            self.resource.extract_path,
            command=self.resource.extract_command,
            flags=self.resource.extract_flags,
            user=self.resource.user,
            group=self.resource.group,
        )

    def transfer_download(self) -> None:
        expected = self.expected_checksum() if self.resource.verification_enabled else None
        self.fetcher.transfer_download(self.resource, expected)

    @property
    def creates(self) -> Optional[str]:
        """Reported marker value; a sentinel when extraction is pending."""
        if self.resource.extract:
            return str(self.resource.creates) if self.extracted() else NOT_EXTRACTED
        return str(self.resource.creates) if self.resource.creates is not None else None

    def sync_creates(self) -> None:
        """Repair a missing marker by extracting the archive again."""
        self.extract()

    def converge(self, ensure: Ensure = Ensure.PRESENT, noop: bool = False) -> ConvergeResult:
        """Run one convergence call.

        Args:
            ensure: Requested presence
            noop: Only observe and plan

        Returns:
            Observed state, chosen action and whether anything changed
        """
        self.archive_checksum = None
        self._remote_checksum = None

        with LogContext(logger, archive=str(self.resource.path)):
            observed = self.observe()
            state = observed.state
            sync_marker = (
                self.resource.extract
                and self.resource.creates is not None
                and not observed.marker_exists
            )
            action = plan(state, ensure, sync_marker=sync_marker)
            if observed.local_checksum is not None:
                self.archive_checksum = observed.local_checksum
            logger.info(f"Archive {self.resource.path} is {state.value}, action: {action.value}")

            if noop or action is Action.NONE:
                return ConvergeResult(state, action, changed=False)

            changed = True
            if action is Action.CREATE:
                self.create(observed)
            elif action is Action.EXTRACT:
                self.sync_creates()
            elif action is Action.CLEANUP:
                changed = self.cleanup()
            elif action is Action.DESTROY:
                changed = self.destroy()

            return ConvergeResult(state, action, changed=changed)
