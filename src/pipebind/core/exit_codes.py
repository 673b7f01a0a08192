# topmark:header:start
#
#   file         : exit_codes.py
#   file_relpath : src/pipebind/core/exit_codes.py
#   project      : PipeBind
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Exit codes for the PipeBind CLI.

The driver keeps the classic two-valued contract of pipeline runners: a run either
succeeds or it does not. Binding errors, execution errors, resource errors and
unusable command lines all map to `FAILURE`.
"""

from enum import IntEnum


class ExitCode(IntEnum):
    """Standardized exit codes for the PipeBind CLI.

    Attributes:
        SUCCESS: The pipeline ran and all outputs were routed.
        FAILURE: A binding, execution or resource error was reported, or the
            command line could not be used (usage text is printed in that case).
    """

    SUCCESS = 0
    FAILURE = 1
