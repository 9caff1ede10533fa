"""
:class:`LocationResolver` finds an instruction with a source location
to attribute a diagnostic to, when the instruction it is about
has none.

Phis and selects often carry no location: they are synthesized
while lowering a single source expression. The instructions
consuming their result point at that expression, so the resolver
looks at the users of a phi or select, recursively, up to a fixed
depth. Any other kind of instruction yields no fallback.
"""

from .. import ir


class LocationResolver:
    """
    :ivar max_depth: (int) how many use edges away from the original
        instruction the search may go
    """

    def __init__(self, max_depth=4):
        assert max_depth >= 0
        self.max_depth = max_depth

    def resolve(self, insn):
        """
        Returns ``insn`` if it has a location, otherwise the first
        instruction with a location found among the users of ``insn``,
        or None.
        """
        return self._resolve(insn, self.max_depth)

    def _resolve(self, insn, budget):
        if insn.loc is not None:
            return insn
        if budget == 0:
            return None

        if isinstance(insn, (ir.Phi, ir.Select)):
            for user in insn.uses:
                if not isinstance(user, ir.Instruction):
                    continue
                found = self._resolve(user, budget - 1)
                if found is not None:
                    return found
        return None

def resolve(insn, max_depth=4):
    return LocationResolver(max_depth).resolve(insn)
