# topmark:header:start
#
#   project      : PipeBind
#   file         : __main__.py
#   file_relpath : src/pipebind/__main__.py
#   license      : MIT
#   copyright    : (c) 2025 Olivier Biot
#
# topmark:header:end

"""Allow ``python -m pipebind``."""

from pipebind.cli.main import main

if __name__ == "__main__":
    main()
