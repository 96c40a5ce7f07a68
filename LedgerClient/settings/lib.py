"""Settings library for the client configuration.

Provides:
    - Schema validation and enforcement for the client.json structure.
    - Loading the client settings.
    - Paths of the per-user configuration and session files.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List

from PySide6 import QtCore, QtWidgets

from ..status import status

app_name: str = 'LedgerClient'

DEFAULT_BASE_URL: str = 'http://localhost:8081'

DASHBOARD_KEYS: List[str] = [
    'months',
    'page_size',
    'default_currency',
    'theme',
]

THEMES: List[str] = ['light', 'dark']

CLIENT_SCHEMA: Dict[str, Any] = {
    'server': {
        'type': dict,
        'required': True,
        'item_schema': {
            'base_url': {'type': str, 'required': True},
        }
    },
    'dashboard': {
        'type': dict,
        'required': True,
        'required_keys': DASHBOARD_KEYS,
        'item_schema': {
            'months': {'type': int, 'required': True, 'min': 1},
            'page_size': {'type': int, 'required': True, 'min': 1},
            'default_currency': {'type': str, 'required': True},
            'theme': {'type': str, 'required': True, 'allowed_values': THEMES},
        }
    },
}


def _validate_server(server_dict: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate the 'server' section of the client configuration.

    Args:
        server_dict: The section data.
        item_schema: Dict describing required fields and their types.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a required field is missing or the address is not http(s).
    """
    logging.debug('Validating "server" section.')
    for field, field_specs in item_schema.items():
        if field_specs['required'] and field not in server_dict:
            msg = f'"server" section missing "{field}".'
            logging.error(msg)
            raise ValueError(msg)
        if not isinstance(server_dict[field], field_specs['type']):
            msg = f'"server" field "{field}" must be {field_specs["type"]}, got {type(server_dict[field])}.'
            logging.error(msg)
            raise TypeError(msg)

    base_url: str = server_dict['base_url']
    if not base_url.startswith(('http://', 'https://')):
        msg = f'base_url must start with http:// or https://, got "{base_url}".'
        logging.error(msg)
        raise ValueError(msg)


def _validate_dashboard(dashboard_dict: Dict[str, Any], specs: Dict[str, Any]) -> None:
    """Validate the 'dashboard' section of the client configuration.

    Args:
        dashboard_dict: The section data.
        specs: Schema dict containing 'required_keys' and 'item_schema'.

    Raises:
        TypeError: If a value has the wrong type.
        ValueError: If keys are missing, or a value is out of range or not allowed.
    """
    logging.debug('Validating "dashboard" section.')
    missing = [k for k in specs['required_keys'] if k not in dashboard_dict]
    if missing:
        msg = f'"dashboard" section missing keys: {missing}.'
        logging.error(msg)
        raise ValueError(msg)

    for key, key_specs in specs['item_schema'].items():
        value = dashboard_dict[key]
        # bool is an int subclass but never a valid count
        if isinstance(value, bool) or not isinstance(value, key_specs['type']):
            msg = f'"dashboard" key "{key}" must be {key_specs["type"]}, got {type(value)}.'
            logging.error(msg)
            raise TypeError(msg)
        if 'min' in key_specs and value < key_specs['min']:
            msg = f'"dashboard" key "{key}" must be >= {key_specs["min"]}, got {value}.'
            logging.error(msg)
            raise ValueError(msg)
        if 'allowed_values' in key_specs and value not in key_specs['allowed_values']:
            msg = f'"dashboard" key "{key}" must be one of {key_specs["allowed_values"]}, got "{value}".'
            logging.error(msg)
            raise ValueError(msg)


class ConfigPaths:
    """Manage application file paths and ensure default templates and directories exist."""

    def __init__(self) -> None:
        """Set up application paths and ensure required directories and templates exist."""
        QtWidgets.QApplication.setApplicationName(app_name)
        QtWidgets.QApplication.setOrganizationName('')
        logging.debug(f'Setting application name: {app_name}')

        p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
        app_data_dir = pathlib.Path(p)
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.template_dir: pathlib.Path = pathlib.Path(__file__).parent.parent / 'config'
        self.client_template: pathlib.Path = self.template_dir / 'client.json.template'
        self.stylesheet_path: pathlib.Path = self.template_dir / 'stylesheet.qss'

        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.auth_dir: pathlib.Path = self.config_dir / 'auth'

        self.client_path: pathlib.Path = self.config_dir / 'client.json'
        self.session_path: pathlib.Path = self.auth_dir / 'session.json'

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify templates exist and prepare configuration directories and files.

        Raises:
            FileNotFoundError: If the template directory or the client template is missing.
        """
        logging.debug(f'Verifying required directories and templates in {self.template_dir}')
        if not self.template_dir.exists():
            msg: str = f'Missing template directory: {self.template_dir}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        if not self.client_template.exists():
            msg = f'Missing client template: {self.client_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)

        if not self.config_dir.exists():
            logging.debug(f'Creating config directory: {self.config_dir}')
            self.config_dir.mkdir(parents=True, exist_ok=True)

        if not self.auth_dir.exists():
            logging.debug(f'Creating auth directory: {self.auth_dir}')
            self.auth_dir.mkdir(parents=True, exist_ok=True)

        if not self.client_path.exists():
            logging.debug(f'Copying default client config from template to {self.client_path}')
            shutil.copy(self.client_template, self.client_path)


class SettingsAPI(ConfigPaths):
    """
    Loads and validates client.json.

    Dashboard values are also reachable with dictionary-style access, e.g. ``settings['months']``.
    """

    def __init__(self, client_path: Optional[str] = None) -> None:
        """Initialize SettingsAPI and load the client data.

        Args:
            client_path: Optional path to a custom client.json file.
        """
        super().__init__()

        self.client_path: pathlib.Path = pathlib.Path(client_path) if client_path else self.client_path

        self.client_data: Dict[str, Any] = {}
        for k in CLIENT_SCHEMA.keys():
            self.client_data[k] = {}

        self.load_client()

    def __getitem__(self, key: str) -> Any:
        """Retrieve a dashboard value using dictionary-style access.

        Raises:
            KeyError: If key is not in DASHBOARD_KEYS.
        """
        if key not in DASHBOARD_KEYS:
            raise KeyError(f'Invalid dashboard key: {key}, must be one of {DASHBOARD_KEYS}')

        _type = CLIENT_SCHEMA['dashboard']['item_schema'][key]['type']
        v = self.client_data.get('dashboard', {}).get(key)
        if not isinstance(v, _type):
            logging.error(f'Dashboard key "{key}" is not of type {_type}, got {type(v)}.')
            return None
        return v

    @property
    def base_url(self) -> str:
        """The configured server address, as stored (trailing slash included if present)."""
        return self.client_data.get('server', {}).get('base_url', DEFAULT_BASE_URL)

    def load_client(self) -> Dict[str, Any]:
        """Load client.json from disk and validate against schema.

        Returns:
            The loaded client data dictionary.

        Raises:
            status.ClientConfigNotFoundException: If client.json file is missing.
            status.ClientConfigInvalidException: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading client config from "{self.client_path}"')
        if not self.client_path.exists():
            raise status.ClientConfigNotFoundException

        try:
            with self.client_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_client_data(data)
        except (ValueError, TypeError) as ex:
            raise status.ClientConfigInvalidException(f'{ex}') from ex

        self.client_data = data
        return self.client_data

    def validate_client_data(self, data: Dict[str, Any] = None) -> None:
        """Validate client data against the defined CLIENT_SCHEMA.

        Args:
            data (dict, optional): Client data to validate. Defaults to self.client_data.

        Raises:
            ValueError: If data is empty or a required section is missing.
            TypeError: If a section has the wrong type.
        """
        if data is None:
            data = self.client_data
        if not data:
            raise ValueError('Client data is empty.')

        logging.debug('Validating client data against schema.')
        for field, specs in CLIENT_SCHEMA.items():
            if specs.get('required') and field not in data:
                raise ValueError(f'Missing required field: {field}')

            if not isinstance(data[field], specs['type']):
                raise TypeError(f'Field "{field}" must be {specs["type"]}, got {type(data[field])}.')

            if field == 'server':
                _validate_server(data[field], specs['item_schema'])
            elif field == 'dashboard':
                _validate_dashboard(data[field], specs)

        logging.debug('Client data is valid.')


settings: SettingsAPI = SettingsAPI()
