"""
UI glue for GridEditor.

Modules:

- :mod:`GridEditor.ui.actions` – Application-wide signals and the slots serving external cell actions.
"""
