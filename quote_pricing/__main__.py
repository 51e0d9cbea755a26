"""Allow running as: python -m quote_pricing booking.json [catalog.json]"""

import sys

from quote_pricing.main import cli

if __name__ == "__main__":
    sys.exit(cli(sys.argv[1:]))
