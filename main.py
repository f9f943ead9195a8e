import sys

from paastel_build.cli.build_cli import main

if __name__ == "__main__":
    sys.exit(main())
