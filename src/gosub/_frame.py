"""Execution frames and callable functions"""

__all__ = ["Frame", "Function", "run_node"]

import threading


class Frame:
    """Slot storage for running code.

    The interpreter owns one shared frame holding the globals of every
    registered package. Each function call gets a private frame for its
    locals that points back at the shared one through `globals`.

    Args:
        size: (int) Number of slots
        globals: (Frame | None) Frame holding globals, self when None

    Attributes:
        data: (list) Slot values
        result: Value set by a return statement
        mutex: (threading.Lock) Guards resizing of `data`
    """

    def __init__(self, size=0, globals=None):
        self.data = [None] * size
        self.globals = globals if globals is not None else self
        self.result = None
        self.mutex = threading.Lock()

    def __repr__(self):
        return f"Frame<{len(self.data)} slots>"

    def grow(self, values):
        """Append slots under `mutex`. Returns the index of the first new slot.

        Frames never shrink.
        """
        with self.mutex:
            base = len(self.data)
            self.data.extend(values)
            return base


class Function:
    """Compiled function body.

    Args:
        name: (str) Function name
        nparams: (int) Number of parameters, stored in the first slots

    Attributes:
        entry: First node of the body graph, None for an empty body
        nlocals: (int) Number of local slots, parameters included
    """

    def __init__(self, name, nparams):
        self.name = name
        self.nparams = nparams
        self.entry = None
        self.nlocals = nparams

    def __repr__(self):
        return f"Function<{self.name}>"

    def invoke(self, globals, args=()):
        """Run the function with a fresh local frame. Returns its result."""
        frame = Frame(self.nlocals, globals=globals)
        frame.data[:len(args)] = args
        run_node(self.entry, frame)
        return frame.result


def run_node(node, frame):
    """Execute a graph from node until it runs off the end."""
    while node is not None:
        node = node.execute(frame)
