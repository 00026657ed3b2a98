"""
Core SMBO machinery: history, configuration, termination and the controller.

Import from the submodules (or from the top-level package); this module is
kept free of imports so the leaf modules can depend on core.errors and
core.path without cycles.
"""
