"""Generated package modules (li)."""

from . import linux
