"""
Command runner adapters.
"""

from featureforge.infrastructure.commands.fake import FakeCommandRunner
from featureforge.infrastructure.commands.subprocess_runner import (
    SubprocessCommandRunner,
)

__all__ = [
    "FakeCommandRunner",
    "SubprocessCommandRunner",
]
