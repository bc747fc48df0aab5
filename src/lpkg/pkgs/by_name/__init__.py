"""Generated package modules, sharded by name prefix."""

from . import bi
from . import li
