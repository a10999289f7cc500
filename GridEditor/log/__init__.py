"""
Logging subsystem for the grid editor.

Modules:

- :mod:`GridEditor.log.log` – Root logger setup, the in-memory tank handler and the Qt message bridge.
"""
