"""AST nodes for gosub source files."""

from ._node import *
from ._decl import *
from ._stmt import *
from ._expr import *
from ._build import *
