"""Tool availability checker for bucket transports."""

import logging
import shutil
from typing import Callable, Dict, Iterable, List, Optional

from .config import TransferConfig
from .resource import ArchiveResource
from .sources import SourceScheme

logger = logging.getLogger(__name__)


def check_tool_availability(
    config: Optional[TransferConfig] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> Dict[str, bool]:
    """
    Check availability of the CLIs used for bucket sources.

    Returns:
        Dictionary mapping tool names to availability status:
        - aws command: for s3:// sources
        - gsutil command: for gs:// sources
    """
    config = config or TransferConfig()
    return {
        config.aws_command: which(config.aws_command) is not None,
        config.gsutil_command: which(config.gsutil_command) is not None,
    }


def report_missing_tools(
    resources: Iterable[ArchiveResource],
    config: Optional[TransferConfig] = None,
    which: Callable[[str], Optional[str]] = shutil.which,
) -> List[str]:
    """
    Warn about tools that resources will need if they have to download.

    Resources whose archive is already in place never run the tool, so a
    missing tool is not an error at this point.

    Returns:
        Names of missing tools that at least one resource depends on
    """
    config = config or TransferConfig()
    tools = check_tool_availability(config, which)
    needed = {
        SourceScheme.S3: config.aws_command,
        SourceScheme.GS: config.gsutil_command,
    }

    missing = []
    for resource in resources:
        if resource.source is None:
            continue
        tool = needed.get(resource.source.scheme)
        if tool and not tools[tool] and tool not in missing:
            logger.warning(f"Tool not found: {{'tool': '{tool}', 'needed_by': '{resource.path}'}}")
            missing.append(tool)

    return missing
