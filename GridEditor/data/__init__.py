"""
GridEditor data package: models presenting the edit session to Qt views.

This package provides:

- :mod:`GridEditor.data.model` – :class:`GridEditor.data.model.grid.GridTableModel`, the table model of the grid editor.
"""
