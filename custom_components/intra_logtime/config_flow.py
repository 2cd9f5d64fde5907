"""Config flow for 42 Intra Logtime integration."""
from __future__ import annotations
import logging
import uuid
from collections.abc import Mapping
from typing import Any, Dict, Optional
import homeassistant.helpers.config_validation as cv
import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from . import _validate_credentials
from .const import DEFAULT_GOAL_HOURS, DEFAULT_GOAL_MINUTES, DOMAIN
from .goal import coerce_goal

_LOGGER = logging.getLogger(__name__)

# Goal fields are free text so that unusable values can fall back to the defaults
DEFAULTS: Dict[str, Any] = {
    'entry_name': 'My 42 Logtime',
    'client_id': '',
    'client_secret': '',
    'user_login': '',
    'goal_hours': str(DEFAULT_GOAL_HOURS),
    'goal_minutes': str(DEFAULT_GOAL_MINUTES),
    'debug_mode': False,
}

REQUIRED_FIELDS = ('entry_name', 'client_id', 'client_secret', 'user_login')


def _build_schema(defaults: Dict[str, Any]) -> vol.Schema:
    return vol.Schema(
        {
            vol.Required('entry_name', default=defaults['entry_name']): cv.string,
            vol.Required('client_id', default=defaults['client_id']): cv.string,
            vol.Required('client_secret', default=defaults['client_secret']): cv.string,
            vol.Required('user_login', default=defaults['user_login']): cv.string,
            vol.Required('goal_hours', default=str(defaults['goal_hours'])): cv.string,
            vol.Required('goal_minutes', default=str(defaults['goal_minutes'])): cv.string,
            vol.Required('debug_mode', default=defaults['debug_mode']): cv.boolean,
        }
    )


CONFIG_SCHEMA = _build_schema(DEFAULTS)


def _check_required(user_input: Dict[str, Any]) -> Dict[str, str]:
    """Return errors['base'] for the first empty required field."""
    for field in REQUIRED_FIELDS:
        if not user_input.get(field) or not str(user_input[field]).strip():
            return {'base': f'{field}_required'}
    return {}


def _normalize(user_input: Dict[str, Any]) -> Dict[str, Any]:
    """Strip text fields and coerce the goal to integers."""
    goal_hours, goal_minutes = coerce_goal(user_input.get('goal_hours'), user_input.get('goal_minutes'))
    return {
        'entry_name': user_input['entry_name'].strip(),
        'client_id': user_input['client_id'].strip(),
        'client_secret': user_input['client_secret'].strip(),
        'user_login': user_input['user_login'].strip().lower(),
        'goal_hours': goal_hours,
        'goal_minutes': goal_minutes,
        'debug_mode': bool(user_input.get('debug_mode', False)),
    }


class CustomFlow(config_entries.ConfigFlow, domain=DOMAIN):
    data: Optional[Dict[str, Any]]

    async def async_step_user(self, user_input: Optional[Dict[str, Any]] = None):
        errors: Dict[str, str] = {}
        if user_input is not None:
            errors = _check_required(user_input)
            if not errors:
                self.data = _normalize(user_input)
                error = await _validate_credentials(self.data['client_id'], self.data['client_secret'])
                if error:
                    errors['base'] = error
            if not errors:
                # Create new guid for the entry
                self.data['guid'] = str(uuid.uuid4())
                return self.async_create_entry(title=f"{self.data['entry_name']}", data=self.data)

        return self.async_show_form(step_id="user", data_schema=CONFIG_SCHEMA, errors=errors)

    async def async_step_reauth(self, entry_data: Mapping[str, Any]):
        """Started by HA when the coordinator raises ConfigEntryAuthFailed."""
        return await self.async_step_reauth_confirm()

    async def async_step_reauth_confirm(self, user_input: Optional[Dict[str, Any]] = None):
        entry = self._get_reauth_entry()
        errors: Dict[str, str] = {}

        if user_input is not None:
            client_id = (user_input.get('client_id') or '').strip()
            client_secret = (user_input.get('client_secret') or '').strip()
            if not client_id:
                errors['base'] = 'client_id_required'
            elif not client_secret:
                errors['base'] = 'client_secret_required'
            else:
                error = await _validate_credentials(client_id, client_secret)
                if error:
                    errors['base'] = error
            if not errors:
                return self.async_update_reload_and_abort(
                    entry,
                    data_updates={'client_id': client_id, 'client_secret': client_secret},
                )

        schema = vol.Schema(
            {
                vol.Required('client_id', default=entry.data.get('client_id', '')): cv.string,
                vol.Required('client_secret', default=''): cv.string,
            }
        )
        return self.async_show_form(
            step_id="reauth_confirm",
            data_schema=schema,
            errors=errors,
            description_placeholders={'entry_name': entry.title},
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Get the options flow for this handler."""
        return OptionsFlowHandler(config_entry)


class OptionsFlowHandler(config_entries.OptionsFlow):
    """Handles options flow for the component."""

    def __init__(self, config_entry: config_entries.ConfigEntry) -> None:
        self._entry = config_entry

    def _current_defaults(self) -> Dict[str, Any]:
        """Current values: options override data, data overrides DEFAULTS."""
        defaults = dict(DEFAULTS)
        for source in (self._entry.data, self._entry.options):
            for key in DEFAULTS:
                if key in source:
                    defaults[key] = source[key]
        return defaults

    async def async_step_init(
        self, user_input: Dict[str, Any] = None
    ) -> Dict[str, Any]:
        errors: Dict[str, str] = {}

        if user_input is not None:
            errors = _check_required(user_input)
            if not errors:
                new_data = _normalize(user_input)
                new_data['guid'] = self._entry.data['guid']

                credentials_changed = (
                    new_data['client_id'] != self._entry.data.get('client_id')
                    or new_data['client_secret'] != self._entry.data.get('client_secret')
                )
                if credentials_changed:
                    error = await _validate_credentials(new_data['client_id'], new_data['client_secret'])
                    if error:
                        errors['base'] = error

            if not errors:
                # Update the config entry and rename it in the UI
                self.hass.config_entries.async_update_entry(
                    self._entry,
                    data=new_data,
                    title=new_data['entry_name'],
                )
                return self.async_create_entry(title=f"{new_data['entry_name']}", data=new_data)

        return self.async_show_form(
            step_id="init", data_schema=_build_schema(self._current_defaults()), errors=errors
        )
