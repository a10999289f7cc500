"""
Core package for GridEditor providing the editing engine.

This package includes:

- :mod:`GridEditor.core.document` – The in-memory grid of string cells.
- :mod:`GridEditor.core.undo` – Edit operations and the bounded undo stack.
- :mod:`GridEditor.core.selection` – Column selection for batch deletion.
- :mod:`GridEditor.core.classifier` – Routing of cell presses to editing or to phone calls.
- :mod:`GridEditor.core.service` – REST client of the backend and the background worker thread.
- :mod:`GridEditor.core.session` – Optimistic editing with background reconciliation.
"""
