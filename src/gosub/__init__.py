"""
gosub, an embedded interpreter for a small subset of Go

Packages are loaded from source, analysed and turned into executable
control flow graphs, then run inside a shared interpreter instance.
"""

__version__ = "0.1.0"


from ._error import *
from ._fs import *
from ._options import *
from ._discover import *
from ._buildtag import *
from ._types import *
from ._scope import *
from ._builtin import *
from ._frame import *
from ._parse import *
from . import ast
from ._gta import *
from ._cfg import *
from ._src import *
from ._interp import *
