from . import ok
from . import raises
