import logging

import voluptuous as vol

from homeassistant import config_entries, core
from homeassistant.config_entries import ConfigEntryState
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ConfigEntryNotReady, HomeAssistantError
import homeassistant.helpers.config_validation as cv

from .api.auth import CredentialManager, request_token, token_matches
from .api.errors import AuthenticationError, IntraApiError, TransientNetworkError
from .api.users import SearchMode
from .const import (
    DOMAIN,
    HISTORY_DAYS,
    SERVICE_AUTHENTICATE,
    SERVICE_FETCH_HISTORY,
    SERVICE_REFRESH,
    SERVICE_SEARCH_USERS,
    SERVICE_TOGGLE_PIN,
    SERVICE_TOKEN_INFO,
    STORE_KEY_TOKEN,
)
from .coordinator import IntraLogtimeCoordinator
from .coordinator_utils import describe_error
from .store import create_store
from .time_codec import format_time

PLATFORMS: list[Platform] = [Platform.SENSOR, Platform.BINARY_SENSOR]
_LOGGER = logging.getLogger(__name__)

ENTRY_SCHEMA = vol.Schema({vol.Optional("entry_id"): cv.string})
LOGIN_SCHEMA = ENTRY_SCHEMA.extend({vol.Required("login"): cv.string})
HISTORY_SCHEMA = LOGIN_SCHEMA.extend(
    {vol.Optional("days_back", default=HISTORY_DAYS): vol.All(vol.Coerce(int), vol.Range(min=0, max=365))}
)
SEARCH_SCHEMA = ENTRY_SCHEMA.extend(
    {
        vol.Required("query"): cv.string,
        vol.Optional("mode", default=SearchMode.LOGIN_PREFIX.value): vol.In([mode.value for mode in SearchMode]),
    }
)


async def _validate_credentials(client_id: str, client_secret: str) -> str | None:
    """
    Try a client-credentials exchange.

    Returns None on success, "cannot_connect" when the API is unreachable and
    "invalid_auth" when the credentials are rejected.
    """
    try:
        await request_token(client_id, client_secret, {"grant_type": "client_credentials"})
    except TransientNetworkError as e:
        _LOGGER.warning("42 Intra API unreachable while validating credentials: %s", e)
        return "cannot_connect"
    except IntraApiError as e:
        _LOGGER.warning("42 Intra rejected the client credentials: %s", e)
        return "invalid_auth"
    return None


async def async_setup(hass: core.HomeAssistant, config: dict) -> bool:
    """Set up the integration."""
    hass.data.setdefault(DOMAIN, {})
    return True


async def async_setup_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Set up platform from a ConfigEntry."""
    store = create_store(hass, entry.data["guid"])

    # A persisted token of the same client makes a second exchange unnecessary
    if not token_matches(await store.async_get(STORE_KEY_TOKEN), entry.data["client_id"]):
        error = await _validate_credentials(entry.data["client_id"], entry.data["client_secret"])
        if error == "cannot_connect":
            raise ConfigEntryNotReady("Cannot reach the 42 Intra API")
        if error == "invalid_auth":
            raise ConfigEntryNotReady("42 Intra rejected the client credentials")

    logging.getLogger(__package__).setLevel(
        logging.DEBUG if entry.data.get("debug_mode") else logging.NOTSET
    )

    coordinator = IntraLogtimeCoordinator(hass, dict(entry.data), store=store)
    await coordinator.async_config_entry_first_refresh()
    entry.runtime_data = coordinator

    entry.async_on_unload(
        entry.add_update_listener(_async_update_listener)
    )
    _async_register_services(hass)

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def _async_update_listener(hass: HomeAssistant, config_entry):
    """Handle config options update."""
    # Reload the integration when the options change.
    await hass.config_entries.async_reload(config_entry.entry_id)


async def async_unload_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> bool:
    """Unload a config entry."""
    return await hass.config_entries.async_unload_platforms(entry, PLATFORMS)


async def async_remove_entry(
    hass: core.HomeAssistant, entry: config_entries.ConfigEntry
) -> None:
    """Revoke the token and delete the persisted state of a removed entry."""
    store = create_store(hass, entry.data["guid"])
    credentials = CredentialManager(store, entry.data["client_id"], entry.data["client_secret"])
    await credentials.async_load()
    await credentials.async_revoke()
    await store.async_clear()


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def _coordinators(hass: HomeAssistant, call: ServiceCall) -> list[IntraLogtimeCoordinator]:
    """Coordinators targeted by a service call (all loaded entries by default)."""
    entry_id = call.data.get("entry_id")
    coordinators = [
        entry.runtime_data
        for entry in hass.config_entries.async_entries(DOMAIN)
        if entry.state is ConfigEntryState.LOADED and (entry_id is None or entry.entry_id == entry_id)
    ]
    if not coordinators:
        raise HomeAssistantError("No loaded 42 Intra logtime entry matches the call")
    return coordinators


def _raise_for(exc: IntraApiError) -> None:
    details = describe_error(exc)
    raise HomeAssistantError(f"{details.title}: {details.description}") from exc


def _async_register_services(hass: HomeAssistant) -> None:
    if hass.services.has_service(DOMAIN, SERVICE_REFRESH):
        return

    async def _refresh(call: ServiceCall) -> None:
        for coordinator in _coordinators(hass, call):
            await coordinator.async_revalidate()

    async def _authenticate(call: ServiceCall) -> None:
        for coordinator in _coordinators(hass, call):
            try:
                await coordinator.async_authenticate()
            except AuthenticationError as exc:
                _raise_for(exc)

    async def _toggle_pin(call: ServiceCall) -> ServiceResponse:
        coordinator = _coordinators(hass, call)[0]
        try:
            pinned = await coordinator.async_toggle_pin(call.data["login"])
        except IntraApiError as exc:
            _raise_for(exc)
        return {"login": call.data["login"].strip().lower(), "pinned": pinned}

    async def _token_info(call: ServiceCall) -> ServiceResponse:
        info = _coordinators(hass, call)[0].get_token_info()
        _LOGGER.debug("Token info: expires at %s, expires in %s", info.expires_at, info.expires_in)
        return {
            "token": info.token,
            "expires_at": info.expires_at.isoformat() if info.expires_at else None,
            "expires_in": info.expires_in,
        }

    async def _fetch_history(call: ServiceCall) -> ServiceResponse:
        coordinator = _coordinators(hass, call)[0]
        try:
            history = await coordinator.async_fetch_history(call.data["login"], call.data["days_back"])
        except IntraApiError as exc:
            _raise_for(exc)
        return {
            "login": history.user.login,
            "profile_url": history.user.profile_url,
            "total_time": history.total_time,
            "days": [
                {"date": day, "logtime": history.stats[day], "display": format_time(history.stats[day])}
                for day in history.sorted_dates
            ],
        }

    async def _search_users(call: ServiceCall) -> ServiceResponse:
        coordinator = _coordinators(hass, call)[0]
        try:
            users = await coordinator.async_search_users(call.data["query"], SearchMode(call.data["mode"]))
        except IntraApiError as exc:
            _raise_for(exc)
        return {
            "users": [
                {"login": user.login, "location": user.location, "image_url": user.image_url}
                for user in users
            ]
        }

    hass.services.async_register(DOMAIN, SERVICE_REFRESH, _refresh, schema=ENTRY_SCHEMA)
    hass.services.async_register(DOMAIN, SERVICE_AUTHENTICATE, _authenticate, schema=ENTRY_SCHEMA)
    hass.services.async_register(
        DOMAIN, SERVICE_TOGGLE_PIN, _toggle_pin, schema=LOGIN_SCHEMA,
        supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_TOKEN_INFO, _token_info, schema=ENTRY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_FETCH_HISTORY, _fetch_history, schema=HISTORY_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SEARCH_USERS, _search_users, schema=SEARCH_SCHEMA,
        supports_response=SupportsResponse.ONLY,
    )
