"""Generated package modules (bi)."""

from . import binutils_pass_1
