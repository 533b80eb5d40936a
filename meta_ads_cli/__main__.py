import sys

from meta_ads_cli import entrypoint

sys.exit(entrypoint())
