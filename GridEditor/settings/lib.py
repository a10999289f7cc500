"""Settings library for the editor configuration.

Provides:
    - Schema validation and enforcement for the editor.json structure.
    - Loading, saving, reloading and reverting settings sections.
    - Paths of the shipped template and the user's copy of the settings file.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List

from PySide6 import QtCore

from ..status import status

app_name: str = 'GridEditor'

SETTINGS_SCHEMA: Dict[str, Any] = {
    'remote': {
        'type': dict,
        'required': True,
        'item_schema': {
            'base_url': {'type': str, 'required': True},
            'company_id': {'type': str, 'required': True},
            'token': {'type': str, 'required': False},
            'timeout': {'type': int, 'required': True, 'min': 1},
            'max_attempts': {'type': int, 'required': True, 'min': 1},
            'persist_structure': {'type': bool, 'required': True},
            'max_cells': {'type': int, 'required': True, 'min': 1},
        }
    },
    'editor': {
        'type': dict,
        'required': True,
        'item_schema': {
            'undo_depth': {'type': int, 'required': True, 'min': 1},
            'phone_min_digits': {'type': int, 'required': True, 'min': 1},
            'phone_max_digits': {'type': int, 'required': True, 'min': 1},
            'message_timeout': {'type': int, 'required': True, 'min': 0},
        }
    },
}


def _validate_items(section_name: str, section: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate the values of one settings section against its item schema.

    Args:
        section_name: Name of the section, used in error messages.
        section: The section data.
        item_schema: Mapping of key to {'type', 'required', 'min'} specs.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If a required key is missing, unknown keys are present, or a value is out of range.
    """
    logging.debug(f'Validating "{section_name}" section.')
    unknown: List[str] = [k for k in section if k not in item_schema]
    if unknown:
        msg: str = f'Unknown keys in "{section_name}": {unknown}.'
        logging.error(msg)
        raise ValueError(msg)

    for key, specs in item_schema.items():
        if key not in section:
            if specs.get('required'):
                msg = f'Missing required key "{key}" in "{section_name}".'
                logging.error(msg)
                raise ValueError(msg)
            continue

        value = section[key]
        # bool is a subclass of int, so reject it explicitly for int fields
        if not isinstance(value, specs['type']) or (specs['type'] is int and isinstance(value, bool)):
            msg = f'"{section_name}.{key}" must be {specs["type"].__name__}, got {type(value).__name__}.'
            logging.error(msg)
            raise TypeError(msg)

        if 'min' in specs and value < specs['min']:
            msg = f'"{section_name}.{key}" must be >= {specs["min"]}, got {value}.'
            logging.error(msg)
            raise ValueError(msg)


class ConfigPaths:
    """Manage application file paths and ensure the default settings file exists.

    The template ships with the package; the user's copy lives in the Qt application data
    directory and is created from the template on first use.
    """

    def __init__(self) -> None:
        QtCore.QCoreApplication.setApplicationName(app_name)
        QtCore.QCoreApplication.setOrganizationName('')
        logging.debug(f'Setting application name: {app_name}')

        p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
        app_data_dir = pathlib.Path(p)
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.template_dir: pathlib.Path = pathlib.Path(__file__).parent.parent / 'config'
        self.settings_template: pathlib.Path = self.template_dir / 'editor.json.template'

        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.settings_path: pathlib.Path = self.config_dir / 'editor.json'

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify the template exists and prepare the configuration directory and file.

        Raises:
            FileNotFoundError: If the template directory or file is missing.
        """
        logging.debug(f'Verifying required templates in {self.template_dir}')
        if not self.template_dir.exists():
            msg: str = f'Missing template directory: {self.template_dir}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        if not self.settings_template.exists():
            msg = f'Missing settings template: {self.settings_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)

        if not self.config_dir.exists():
            logging.debug(f'Creating config directory: {self.config_dir}')
            self.config_dir.mkdir(parents=True, exist_ok=True)

        if not self.settings_path.exists():
            logging.debug(f'Copying default settings from template to {self.settings_path}')
            shutil.copy(self.settings_template, self.settings_path)

    def revert_settings_to_template(self) -> None:
        """Restore editor.json from the default template file.

        Raises:
            FileNotFoundError: If the template file is missing.
        """
        logging.debug(f'Reverting settings to template: {self.settings_template}')
        if not self.settings_template.exists():
            msg: str = f'Settings template not found: {self.settings_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        shutil.copy(self.settings_template, self.settings_path)


class SettingsAPI(ConfigPaths):
    """
    Provides an interface to get/set/reload/revert/save editor.json sections.
    """

    def __init__(self, settings_path: Optional[str] = None) -> None:
        """Initialize SettingsAPI and load the settings file.

        Args:
            settings_path: Optional path to a custom editor.json file.
        """
        super().__init__()

        self.settings_path: pathlib.Path = pathlib.Path(settings_path) if settings_path else self.settings_path

        self.data: Dict[str, Any] = {k: {} for k in SETTINGS_SCHEMA}
        self.load()

    def load(self) -> Dict[str, Any]:
        """Load editor.json from disk and validate against the schema.

        Returns:
            The loaded settings dictionary.

        Raises:
            status.ConfigNotFoundException: If the file is missing.
            status.ConfigInvalidException: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading settings from "{self.settings_path}"')
        if not self.settings_path.exists():
            raise status.ConfigNotFoundException

        try:
            with self.settings_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate(data)
        except (ValueError, TypeError) as ex:
            raise status.ConfigInvalidException(str(ex)) from ex

        self.data = data
        return self.data

    def validate(self, data: Dict[str, Any] = None) -> None:
        """Validate settings data against SETTINGS_SCHEMA.

        Args:
            data (dict, optional): Data to validate. Defaults to the loaded data.

        Raises:
            TypeError: If a section or value has the wrong type.
            ValueError: If a section or key is missing or a value is out of range.
        """
        if data is None:
            data = self.data
        if not isinstance(data, dict):
            raise TypeError('Settings data must be a dict.')

        for field, specs in SETTINGS_SCHEMA.items():
            if specs.get('required') and field not in data:
                msg: str = f'Missing required section: {field}'
                logging.error(msg)
                raise ValueError(msg)

            if field not in data:
                continue

            if not isinstance(data[field], specs['type']):
                msg = f'Section "{field}" must be {specs["type"].__name__}, got {type(data[field]).__name__}.'
                logging.error(msg)
                raise TypeError(msg)

            _validate_items(field, data[field], specs['item_schema'])

        editor = data.get('editor', {})
        if editor.get('phone_min_digits', 0) > editor.get('phone_max_digits', 0):
            raise ValueError('"editor.phone_min_digits" cannot be larger than "editor.phone_max_digits".')

        logging.debug('Settings data is valid.')

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """Retrieve a copy of a settings section.

        Args:
            section_name: A key of SETTINGS_SCHEMA.

        Returns:
            A copied dict of the requested section.

        Raises:
            KeyError: If section_name is unknown.
        """
        return self.data[section_name].copy()

    def set_section(self, section_name: str, new_data: Dict[str, Any]) -> None:
        """Replace, validate and persist a settings section.

        Args:
            section_name: Section to update.
            new_data: New data dict for the section.

        Raises:
            ValueError: If section_name is unknown or new_data fails validation.
            TypeError: If new_data contains values of the wrong type.
        """
        from ..ui.actions import signals

        if section_name not in SETTINGS_SCHEMA:
            msg: str = f'Unknown section_name for set: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        current_section_data: Dict[str, Any] = self.data.get(section_name, {}).copy()

        self.data[section_name] = new_data
        try:
            self.validate()
        except (ValueError, TypeError) as e:
            logging.error(f'Validation error on set_section("{section_name}"): {e}')
            self.data[section_name] = current_section_data
            raise

        self.save_section(section_name)
        signals.configSectionChanged.emit(section_name)

    def reload_section(self, section_name: str) -> None:
        """Reload a section from disk and emit the change signal.

        Args:
            section_name: Section to reload.

        Raises:
            ValueError: If section_name is unknown or the file fails validation.
            JSONDecodeError: If parsing editor.json fails.
        """
        from ..ui.actions import signals

        if section_name not in SETTINGS_SCHEMA:
            msg: str = f'Unknown section_name for reload: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        logging.debug(f'Reloading section "{section_name}" from disk.')
        try:
            with self.settings_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate(data=data)
        except (ValueError, TypeError) as e:
            logging.error(f'Failed to reload section "{section_name}": {e}')
            raise

        self.data[section_name] = data[section_name]
        signals.configSectionChanged.emit(section_name)

    def revert_section(self, section_name: str) -> None:
        """Revert a section to its template default and save.

        Args:
            section_name: Section to revert.

        Raises:
            ValueError: If section_name is unknown or not present in the template.
        """
        from ..ui.actions import signals

        if section_name not in SETTINGS_SCHEMA:
            msg: str = f'Unknown section_name for revert: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.settings_template.open('r', encoding='utf-8') as f:
            template_data: Dict[str, Any] = json.load(f)

        if section_name not in template_data:
            msg = f'No template-based revert logic for section "{section_name}".'
            logging.error(msg)
            raise ValueError(msg)

        self.data[section_name] = template_data[section_name]
        self.save_section(section_name)

        signals.configSectionChanged.emit(section_name)

    def save_section(self, section_name: str) -> None:
        """Persist a single section, leaving the rest of the file untouched.

        Args:
            section_name: The section to save.

        Raises:
            ValueError: If section_name is not recognized.
        """
        if section_name not in SETTINGS_SCHEMA:
            msg: str = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.settings_path.open('r', encoding='utf-8') as f:
            original_data: Dict[str, Any] = json.load(f)

        new_data: Dict[str, Any] = original_data.copy()
        new_data[section_name] = self.data[section_name]

        logging.debug(f'Saving section "{section_name}" to "{self.settings_path}"')
        with self.settings_path.open('w', encoding='utf-8') as f:
            json.dump(new_data, f, indent=4, ensure_ascii=False)


settings: SettingsAPI = SettingsAPI()
