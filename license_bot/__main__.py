"""Package entry point for ``python -m license_bot``.

Delegates to the CLI; see license_bot/cli.py for the flags.
"""

import sys

if __name__ == "__main__":
    from license_bot.cli import main
    sys.exit(main())
