"""
:class:`MetadataLoader` materializes the :class:`ModuleState`
of a module from its metadata, so that later transforms and
diagnostics can rely on it being present.
"""

import logging


logger = logging.getLogger(__name__)


class MetadataLoader:
    name = "load module state from metadata"

    def process(self, module):
        """
        Returns True if the module state had to be created,
        False if it already existed.
        """
        if module.has_state():
            return False

        module.get_or_create_state()
        logger.debug("%s: created state of module %s", self.name, module.name)
        return True
