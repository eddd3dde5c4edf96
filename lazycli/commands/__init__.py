"""CLI commands"""

from .check import check_command
from .ls import ls_command
from .ref import ref_command
from .run import run_command
from .serve import serve_command
from .submit import submit_command

__all__ = [
    "check_command",
    "ls_command",
    "ref_command",
    "run_command",
    "serve_command",
    "submit_command",
]
