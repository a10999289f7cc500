"""
Settings package for GridEditor.

Modules:

- :mod:`GridEditor.settings.lib` – Schema validation and persistence of the editor.json settings file.
"""
