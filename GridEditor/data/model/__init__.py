"""Qt table models for the GridEditor application.

This subpackage provides :class:`GridTableModel`, which presents an
:class:`~GridEditor.core.session.EditSession` to Qt item views and routes edits and
cell presses back to the session.
"""
