"""Entry point: python -m runit"""
import sys

from .cli import main

sys.exit(main())
