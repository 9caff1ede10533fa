"""
The :mod:`diagnostic` module reports problems found in the IR,
attributing them to the most precise source location available.

:class:`DiagnosticEmitter` builds :class:`DiagnosticInfo` events and
hands them to a :class:`pythonparser.diagnostic.Engine`, or any object
with a ``process(diagnostic)`` method. :class:`Engine` is the default one;
it delivers diagnostics to :mod:`logging`.
"""

import logging
from pythonparser import diagnostic
from . import ir, metadata, debuginfo
from .analyses.debug_location import LocationResolver


logger = logging.getLogger(__name__)


LEVELS = diagnostic.Diagnostic.LEVELS


class DiagnosticInfo:
    """
    A diagnostic message about the IR.

    Unlike :class:`pythonparser.diagnostic.Diagnostic`, its location is
    debug metadata rather than a range of a source buffer.

    :ivar level: (string) one of :data:`LEVELS`
    :ivar reason: (string) message, possibly a format string
    :ivar arguments: (dict) arguments to format :attr:`reason` with
    :ivar function: (:class:`ir.Function` or None) function the message
        is about
    :ivar location: (:class:`metadata.DILocation`,
        :class:`metadata.DIGlobalVariable` or None) source location
    :ivar notes: (list of :class:`DiagnosticInfo`) attached notes
    """

    def __init__(self, level, reason, arguments=None, function=None,
                 location=None, notes=None):
        if level not in LEVELS:
            raise ValueError("level must be one of {}".format(", ".join(LEVELS)))

        self.level, self.reason, self.arguments = level, reason, arguments or {}
        self.function, self.location = function, location
        self.notes = list(notes or [])

    def message(self):
        if not self.arguments:
            return self.reason
        return self.reason.format(**self.arguments)

    def line(self):
        if self.location is None:
            return None
        return self.location.line

    def column(self):
        if isinstance(self.location, metadata.DILocation):
            return self.location.column
        return None

    def _position(self):
        location = self.location
        if location is None:
            return None

        parts = [location.filename() or "<unknown>", str(location.line)]
        if isinstance(location, metadata.DILocation):
            parts.append(str(location.column))
        return ":".join(parts)

    def render(self, only_line=False):
        """
        Returns the human-readable representation of this diagnostic,
        one string per line, followed by its notes.
        """
        position = self._position()
        if position is None:
            lines = ["{}: {}".format(self.level, self.message())]
        else:
            lines = ["{}: {}: {}".format(position, self.level, self.message())]

        if self.function is not None and not only_line:
            lines.append("  in function '{}'".format(self.function.name))

        if not only_line:
            for note in self.notes:
                lines += note.render(only_line=True)
        return lines

    def __repr__(self):
        return "<dbgprop.compiler.diagnostic.DiagnosticInfo {} {}>".format(
            self.level, repr(self.message()))


class Engine(diagnostic.Engine):
    """
    A :class:`pythonparser.diagnostic.Engine` that delivers diagnostics
    to :mod:`logging` instead of ``sys.stderr``.
    """

    _log_levels = {
        "note":    logging.INFO,
        "warning": logging.WARNING,
        "error":   logging.ERROR,
        "fatal":   logging.CRITICAL,
    }

    def render_diagnostic(self, diag):
        logger.log(self._log_levels[diag.level], "%s", "\n".join(diag.render()))


RESOURCE_MAPPING_ERROR = \
    "local resource not guaranteed to map to unique global resource."


class DiagnosticEmitter:
    """
    :ivar engine: diagnostic sink
    :ivar resolver: (:class:`LocationResolver`) used to find a location
        for instructions that have none
    """

    def __init__(self, engine=None, resolver=None):
        if engine is None:
            engine = Engine()
        if resolver is None:
            resolver = LocationResolver()
        self.engine, self.resolver = engine, resolver

    def _emit(self, level, message, function=None, location=None):
        diag = DiagnosticInfo(level, message, {}, function=function,
                              location=location)
        self.engine.process(diag)
        return diag

    # Instructions

    def emit_on_instruction(self, insn, message, level):
        located = None
        if insn.loc is None and isinstance(insn, (ir.Phi, ir.Select)):
            located = self.resolver.resolve(insn)
        if located is None:
            located = insn

        return self._emit(level, message, located.function, located.loc)

    def error_on_instruction(self, insn, message):
        return self.emit_on_instruction(insn, message, "error")

    def warning_on_instruction(self, insn, message):
        return self.emit_on_instruction(insn, message, "warning")

    def emit_resource_mapping_error(self, insn):
        return self.error_on_instruction(insn, RESOURCE_MAPPING_ERROR)

    # Functions

    def emit_on_function(self, func, message, level):
        location = None
        subprogram = debuginfo.get_subprogram(func)
        if subprogram is not None:
            location = metadata.DILocation(subprogram.line, 0, subprogram,
                                           inlined_at=None)
        return self._emit(level, message, func, location)

    def error_on_function(self, func, message):
        return self.emit_on_function(func, message, "error")

    def warning_on_function(self, func, message):
        return self.emit_on_function(func, message, "warning")

    # Global variables

    def emit_on_global_variable(self, gv, message, level):
        location = None
        if gv is not None and gv.module is not None:
            module = gv.module
            if debuginfo.has_debug_info(module):
                # Reuse the cached index if the module state exists.
                if module.has_state():
                    finder = module.get_state().get_or_create_debug_info_finder()
                else:
                    finder = debuginfo.DebugInfoFinder()
                    finder.process_module(module)
                location = debuginfo.find_global_variable_debug_info(gv, finder)
        return self._emit(level, message, None, location)

    def error_on_global_variable(self, gv, message):
        return self.emit_on_global_variable(gv, message, "error")

    def warning_on_global_variable(self, gv, message):
        return self.emit_on_global_variable(gv, message, "warning")

    # Context

    def emit_on_context(self, message, level):
        return self._emit(level, message)

    def error_on_context(self, message):
        return self.emit_on_context(message, "error")

    def warning_on_context(self, message):
        return self.emit_on_context(message, "warning")

    def note_on_context(self, message):
        return self.emit_on_context(message, "note")
