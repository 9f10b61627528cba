#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to answer credential requests from ConnMan and ConnMan VPN
"""

import asyncio
from syslog import syslog, LOG_DEBUG, LOG_INFO
from typing import Dict, List, Optional

from dbus_fast import DBusError, Variant
from dbus_fast.service import ServiceInterface, method

from connman_applet import definition
from connman_applet.presentation import CredentialsDialog, DialogField, Presentation
from connman_applet.utils import variant_to_python


class AgentCanceledError(Exception):
    """
    Exception Class for a credentials request dismissed by the user
    """


class AgentRetryError(Exception):
    """
    Exception Class for a credentials request the daemon should retry
    """


def mandatory_fields(fields: dict) -> List[str]:
    """Names of the requested fields marked mandatory, in request order"""
    return [
        name
        for name, field in fields.items()
        if isinstance(field, dict) and field.get("Requirement") == "mandatory"
    ]


class ConnectionAgent(object):
    """
    Protocol independent agent logic. One credentials dialog is open at most, a new request
    cancels the previous one.
    """

    def __init__(self, presentation: Presentation) -> None:
        self.presentation = presentation
        self.dialog: Optional[CredentialsDialog] = None
        self._pending: Optional[asyncio.Future] = None

    async def request_input(self, service: str, fields: dict) -> Dict[str, str]:
        syslog(LOG_DEBUG, f"Credentials requested for {service}")
        self.cancel()

        requested = mandatory_fields(fields)
        future = asyncio.get_running_loop().create_future()
        self._pending = future

        def confirmed(values: Dict[str, str]) -> None:
            if not future.done():
                future.set_result({name: values.get(name, "") for name in requested})

        def canceled() -> None:
            if not future.done():
                future.set_exception(AgentCanceledError("User canceled password dialog"))

        self.dialog = self.presentation.open_credentials_dialog(
            definition.CREDENTIALS_TITLE,
            [DialogField(name) for name in requested],
            confirmed,
            canceled,
        )

        try:
            return await future
        finally:
            if self._pending is future:
                self._close_dialog()
                self._pending = None

    def report_error(self, service: str, error: str) -> None:
        syslog(LOG_INFO, f"Service {service} reported error: {error}")

    def request_browser(self, service: str, url: str) -> None:
        syslog(LOG_INFO, f"Service {service} requested browser for {url}")

    def _close_dialog(self) -> None:
        if self.dialog is not None:
            self.dialog.close()
            self.dialog = None

    def cancel(self) -> None:
        """Close the open dialog (if any) and fail its request as canceled"""
        pending = self._pending
        self._pending = None
        self._close_dialog()
        if pending is not None and not pending.done():
            pending.set_exception(AgentCanceledError("Request canceled"))

    def release(self) -> None:
        self.cancel()


class AgentInterface(ServiceInterface):
    """
    D-Bus facade of a ConnectionAgent. The same class serves net.connman.Agent and
    net.connman.vpn.Agent, only the interface name and the error domain differ.
    """

    def __init__(self, agent: ConnectionAgent, interface_name: str, error_prefix: str):
        super().__init__(interface_name)
        self.agent = agent
        self.error_prefix = error_prefix

    @method()
    def Release(self):
        syslog(LOG_DEBUG, f"{self.name} Release")
        self.agent.release()

    @method()
    def ReportError(self, service: "o", error: "s"):
        self.agent.report_error(service, error)

    @method()
    def RequestBrowser(self, service: "o", url: "s"):
        self.agent.request_browser(service, url)

    @method()
    async def RequestInput(self, service: "o", fields: "a{sv}") -> "a{sv}":
        return await self.request_input_reply(service, fields)

    async def request_input_reply(self, service: str, fields: dict) -> dict:
        """Run the request and convert its outcome into the RequestInput reply"""
        try:
            values = await self.agent.request_input(service, variant_to_python(fields))
        except AgentCanceledError as e:
            raise DBusError(f"{self.error_prefix}.Canceled", str(e))
        except AgentRetryError as e:
            raise DBusError(f"{self.error_prefix}.Retry", str(e))
        return {name: Variant("s", value) for name, value in values.items()}

    @method()
    def Cancel(self):
        syslog(LOG_DEBUG, f"{self.name} Cancel")
        self.agent.cancel()


def create_agent_interface(agent: ConnectionAgent, vpn: bool = False) -> AgentInterface:
    if vpn:
        return AgentInterface(
            agent,
            definition.CONNMAN_VPN_AGENT_IFACE,
            definition.CONNMAN_VPN_AGENT_ERROR_PREFIX,
        )
    return AgentInterface(
        agent, definition.CONNMAN_AGENT_IFACE, definition.CONNMAN_AGENT_ERROR_PREFIX
    )
