"""CLI: python -m cljform <file.clj>..."""

import logging
import os
import sys

from .errors import FormatError, ReadError
from .formatter import format_file


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m cljform <file.clj>...", file=sys.stderr)
        sys.exit(1)

    level = logging.DEBUG if os.environ.get("CLJFORM_DEBUG") else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s: %(message)s")

    status = 0
    for path in sys.argv[1:]:
        try:
            sys.stdout.write(format_file(path))
        except (ReadError, FormatError, OSError) as e:
            print(e, file=sys.stderr)
            status = 1
    sys.exit(status)


if __name__ == "__main__":
    main()
