from __future__ import annotations

import logging
from typing import Any, Dict

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    DOMAIN,
    CONF_IEEE,
    CONF_MODEL,
    CONF_NAME,
    CONF_RECENCY_WINDOW_MS,
    DEFAULT_RECENCY_WINDOW_MS,
    MAX_RECENCY_WINDOW_MS,
)
from .lib.protocol_const import MODELS
from .zha_bridge import normalize_ieee

_LOGGER = logging.getLogger(__name__)


def ieee_validator(value: Any) -> str:
    """voluptuous validator returning the normalised IEEE address."""

    try:
        return normalize_ieee(value)
    except ValueError as err:
        raise vol.Invalid(str(err)) from err


USER_SCHEMA = vol.Schema({
    vol.Required(CONF_NAME): str,
    vol.Required(CONF_IEEE): str,
    vol.Required(CONF_MODEL, default=MODELS[0]): vol.In(MODELS),
})


def options_schema(current: int) -> vol.Schema:
    return vol.Schema({
        vol.Required(CONF_RECENCY_WINDOW_MS, default=current): vol.All(
            vol.Coerce(int), vol.Range(min=0, max=MAX_RECENCY_WINDOW_MS)
        ),
    })


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    VERSION = 1

    # ------------------------------------------------------------------
    # step user: name + IEEE + model
    # ------------------------------------------------------------------
    async def async_step_user(self, user_input: Dict[str, Any] | None = None):
        errors: Dict[str, str] = {}

        if user_input is not None:
            try:
                ieee = ieee_validator(user_input[CONF_IEEE])
            except vol.Invalid:
                errors[CONF_IEEE] = "invalid_ieee"
            else:
                await self.async_set_unique_id(ieee)
                self._abort_if_unique_id_configured()

                _LOGGER.debug("Adding %s remote %s", user_input[CONF_MODEL], ieee)
                return self.async_create_entry(
                    title=user_input[CONF_NAME],
                    data={
                        CONF_NAME: user_input[CONF_NAME],
                        CONF_IEEE: ieee,
                        CONF_MODEL: user_input[CONF_MODEL],
                    },
                    options={CONF_RECENCY_WINDOW_MS: DEFAULT_RECENCY_WINDOW_MS},
                )

        return self.async_show_form(
            step_id="user",
            data_schema=USER_SCHEMA,
            errors=errors,
            description_placeholders={
                "help": (
                    "Enter the IEEE address ZHA shows for the remote and pick its model. "
                    "ZBEK-26 is the ADEO scene remote. generic-remote covers other "
                    "Lexman remotes that report plain cluster commands."
                )
            },
        )

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        """Return the options flow for this entry."""
        return LexmanRemoteOptionsFlowHandler(config_entry)


# ----------------------------------------------------------------------
# options flow: recency window
# ----------------------------------------------------------------------
class LexmanRemoteOptionsFlowHandler(config_entries.OptionsFlow):
    def __init__(self, entry: config_entries.ConfigEntry) -> None:
        self.entry = entry

    async def async_step_init(self, user_input: Dict[str, Any] | None = None):
        if user_input is not None:
            return self.async_create_entry(title="Lexman remote options", data=user_input)

        current = self.entry.options.get(CONF_RECENCY_WINDOW_MS, DEFAULT_RECENCY_WINDOW_MS)
        return self.async_show_form(
            step_id="init",
            data_schema=options_schema(current),
            description_placeholders={
                "explain": (
                    "How long, in milliseconds, a green left/right press keeps its "
                    "classification for repeated presses. 2000 matches the remote's "
                    "observed behaviour; 0 disables the sticky window."
                )
            },
        )
