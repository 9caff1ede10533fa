"""
The :class:`Module` class encapsulates a single translation unit:
its functions, global variables, compile units, and the
:class:`ModuleState` materialized from its metadata.
"""

import logging
from . import metadata, debuginfo
from .datalayout import DataLayout


logger = logging.getLogger(__name__)


class ModuleState:
    """
    Module-level state derived from the debug metadata of a module.

    The debug info index of a module is expensive to collect, so
    it is computed on first use and cached here.

    :ivar module: (:class:`Module`)
    """

    def __init__(self, module):
        self.module = module
        self._debug_info_finder = None

    def get_or_create_debug_info_finder(self):
        if self._debug_info_finder is None:
            self._debug_info_finder = debuginfo.DebugInfoFinder()
            self._debug_info_finder.process_module(self.module)
        return self._debug_info_finder

    def reset_debug_info_finder(self):
        """Forget the cached index, e.g. after debug metadata was changed."""
        self._debug_info_finder = None


class Module:
    """
    :ivar name: (string) module name
    :ivar context: (:class:`metadata.Context`) owner of value handles
    :ivar data_layout: (:class:`DataLayout`) target data layout
    :ivar functions: (list of :class:`ir.Function`)
    :ivar global_variables: (list of :class:`ir.GlobalVariable`)
    :ivar compile_units: (list of :class:`metadata.DICompileUnit`)
    """

    def __init__(self, name, context=None, data_layout=None):
        self.name = name
        if context is None:
            context = metadata.global_context
        self.context = context
        if data_layout is None:
            data_layout = DataLayout()
        elif isinstance(data_layout, str):
            data_layout = DataLayout(data_layout)
        self.data_layout = data_layout
        self.functions = []
        self.global_variables = []
        self.compile_units = []
        self._state = None

    def add_function(self, func):
        assert func.module is None
        func.module = self
        self.functions.append(func)
        return func

    def add_global_variable(self, gv):
        assert gv.module is None
        gv.module = self
        self.global_variables.append(gv)
        return gv

    def add_compile_unit(self, compile_unit):
        self.compile_units.append(compile_unit)
        return compile_unit

    def has_state(self):
        return self._state is not None

    def get_state(self):
        assert self._state is not None
        return self._state

    def get_or_create_state(self):
        if self._state is None:
            logger.debug("materializing state of module %s", self.name)
            self._state = ModuleState(self)
        return self._state

    def __str__(self):
        lines = ["; module {}".format(self.name)]
        lines += [gv.as_entity() for gv in self.global_variables]
        lines += [str(func) for func in self.functions]
        return "\n".join(lines)
