from __future__ import annotations
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping
import logging
import os
import yaml

from errors import ConfigError


logger = logging.getLogger(__name__)


DEFAULT_EDITOR = 'vim'
DEFAULT_HOURS_DIR = './hours'
DEFAULT_CONFIG_PATH = Path('~/.config/punch/config.yaml')

CONFIG_ENV = 'PUNCH_CONFIG'
HOURS_DIR_ENV = 'PUNCH_HOURS_DIR'
EDITOR_ENV = 'EDITOR'

_KEYS = {'hours_dir', 'editor'}



@dataclass(frozen=True)
class Settings:
    '''Where BRF files live and how to edit them.

    Settings are layered: built-in defaults, then the YAML
    configuration file, then the environment.'''

    hours_dir: Path = Path(DEFAULT_HOURS_DIR)
    editor: str = DEFAULT_EDITOR


    def month_path(self, year: int, month: int) -> Path:
        '''Returns the path of the BRF file of the given month.'''

        return self.hours_dir / f'{year}-{month}.txt'


    def update_from_yaml(self, filename: str | Path) -> Settings:
        '''Returns the settings overridden by a YAML file.'''

        path = Path(filename).expanduser()

        with path.open('r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f'{path}: invalid YAML: {e}') from e

        # An empty file is as good as no file.
        if data is None:
            return self

        if not isinstance(data, dict):
            raise ConfigError(f'{path}: YAML root must be a mapping.')

        unknown = set(data) - _KEYS
        if unknown:
            raise ConfigError(
                f'{path}: unknown settings: {", ".join(sorted(map(str, unknown)))}.'
            )

        for key, value in data.items():
            if not isinstance(value, str):
                raise ConfigError(f'{path}: \'{key}\' must be a string.')

        logger.info('loaded settings from %s', path)

        result = self
        if 'hours_dir' in data:
            result = replace(result, hours_dir=Path(data['hours_dir']).expanduser())
        if 'editor' in data:
            result = replace(result, editor=data['editor'])
        return result


    def update_from_env(self, environ: Mapping[str, str]) -> Settings:
        '''Returns the settings overridden by environment variables.'''

        result = self
        if environ.get(HOURS_DIR_ENV):
            result = replace(result, hours_dir=Path(environ[HOURS_DIR_ENV]).expanduser())
        if environ.get(EDITOR_ENV):
            result = replace(result, editor=environ[EDITOR_ENV])
        return result


    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        environ: Mapping[str, str] | None = None
    ) -> Settings:
        '''Loads the settings.

        An explicitly given configuration file (argument or environment)
        must exist; the default one is optional.'''

        if environ is None:
            environ = os.environ

        settings = cls()

        if config_path is None and environ.get(CONFIG_ENV):
            config_path = environ[CONFIG_ENV]

        if config_path is not None:
            path = Path(config_path).expanduser()
            if not path.is_file():
                raise ConfigError(f'Configuration file not found: {path}.')
            settings = settings.update_from_yaml(path)
        elif DEFAULT_CONFIG_PATH.expanduser().is_file():
            settings = settings.update_from_yaml(DEFAULT_CONFIG_PATH)

        return settings.update_from_env(environ)
