"""
The :mod:`debuginfo` module indexes the debug metadata of a module.
"""


def has_debug_info(module):
    return any(module.compile_units)

def get_subprogram(func):
    return func.subprogram


class DebugInfoFinder:
    """
    Collects the debug descriptors reachable from a module.

    :ivar compile_units: (list of :class:`metadata.DICompileUnit`)
    :ivar subprograms: (list of :class:`metadata.DISubprogram`)
    :ivar global_variables: (list of :class:`metadata.DIGlobalVariable`)
    """

    def __init__(self):
        self.compile_units = []
        self.subprograms = []
        self.global_variables = []
        self._seen = set()

    def _add(self, collection, node):
        if node is None or id(node) in self._seen:
            return False
        self._seen.add(id(node))
        collection.append(node)
        return True

    def process_module(self, module):
        for compile_unit in module.compile_units:
            self._add(self.compile_units, compile_unit)
            for global_variable in compile_unit.global_variables:
                self._add(self.global_variables, global_variable)
            for subprogram in compile_unit.subprograms:
                self._add(self.subprograms, subprogram)

        for func in module.functions:
            self._add(self.subprograms, get_subprogram(func))

    def find_global_variable(self, gv):
        """Returns the descriptor of ``gv``, or None."""
        for global_variable in self.global_variables:
            if global_variable.variable is gv:
                return global_variable
        return None

def find_global_variable_debug_info(gv, finder):
    return finder.find_global_variable(gv)
