#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Request/response access to the ConnMan and ConnMan VPN daemons
"""

from syslog import syslog, LOG_DEBUG
from typing import Any, Callable, List, Optional, Tuple

from dbus_fast import Message, MessageType, Variant
from dbus_fast.aio import ProxyInterface
from dbus_fast.service import ServiceInterface

from connman_applet import definition
from connman_applet.dbus_manager import DBusManager
from connman_applet.introspection import (
    CONNMAN_MANAGER_INTROSPECTION,
    CONNMAN_SERVICE_INTROSPECTION,
    CONNMAN_TECHNOLOGY_INTROSPECTION,
    CONNMAN_VPN_CONNECTION_INTROSPECTION,
    CONNMAN_VPN_MANAGER_INTROSPECTION,
)
from connman_applet.utils import Singleton, run_in_background, variant_to_python


class RemoteObjectProxy(object):
    """
    Stub bound to one remote object: request/response calls plus the object's PropertyChanged
    notification stream.
    """

    def __init__(self, bus_name: str, path: str, interface: str, introspection: str) -> None:
        self.bus_name = bus_name
        self.path = path
        self.interface = interface
        self.introspection = introspection
        self._proxy_interface: Optional[ProxyInterface] = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.interface} {self.path}>"

    def get_proxy_interface(self) -> ProxyInterface:
        if self._proxy_interface is None:
            self._proxy_interface = DBusManager().get_interface(
                self.bus_name, self.path, self.introspection, self.interface
            )
        return self._proxy_interface

    def connect_signal(self, signal: str, callback: Callable[..., Any]) -> int:
        return DBusManager().subscribe(self.get_proxy_interface(), signal, callback)

    def disconnect_signal(self, token: int) -> None:
        DBusManager().unsubscribe(token)

    def subscribe_property_changed(self, callback: Callable[[str, Any], None]) -> int:
        return self.connect_signal("property_changed", callback)

    async def call(self, member: str, signature: str = "", body=None) -> list:
        bus = await DBusManager().get_connected_bus()

        reply = await bus.call(
            Message(
                destination=self.bus_name,
                path=self.path,
                interface=self.interface,
                member=member,
                signature=signature,
                body=body if body is not None else [],
            )
        )

        if reply.message_type == MessageType.ERROR:
            raise Exception(reply.body[0] if reply.body else reply.error_name)

        return reply.body

    def call_remote(self, member: str, signature: str = "", body=None):
        """Issue a call without waiting for it, failures are only logged"""
        syslog(LOG_DEBUG, f"Calling {self.interface}.{member} on {self.path}")
        return run_in_background(
            self.call(member, signature, body), f"{self.interface}.{member} on {self.path}"
        )

    async def get_properties(self) -> dict:
        body = await self.call("GetProperties")
        return variant_to_python(body[0])

    def set_property_remote(self, name: str, value: Any, value_signature: str):
        return self.call_remote(
            "SetProperty", "sv", [name, Variant(value_signature, value)]
        )

    def request_connect(self):
        return self.call_remote("Connect")

    def request_disconnect(self):
        return self.call_remote("Disconnect")

    def request_scan(self):
        return self.call_remote("Scan")


class ConnmanService(object, metaclass=Singleton):
    BUS_NAME = definition.CONNMAN_BUS_NAME
    MANAGER_OBJ_PATH = definition.CONNMAN_MANAGER_OBJ_PATH
    MANAGER_IFACE = definition.CONNMAN_MANAGER_IFACE
    TECHNOLOGY_IFACE = definition.CONNMAN_TECHNOLOGY_IFACE
    SERVICE_IFACE = definition.CONNMAN_SERVICE_IFACE
    MANAGER_INTROSPECTION = CONNMAN_MANAGER_INTROSPECTION
    TECHNOLOGY_INTROSPECTION = CONNMAN_TECHNOLOGY_INTROSPECTION
    SERVICE_INTROSPECTION = CONNMAN_SERVICE_INTROSPECTION

    async def _call_manager(self, member: str, signature: str = "", body=None) -> list:
        bus = await DBusManager().get_connected_bus()

        reply = await bus.call(
            Message(
                destination=self.BUS_NAME,
                path=self.MANAGER_OBJ_PATH,
                interface=self.MANAGER_IFACE,
                member=member,
                signature=signature,
                body=body if body is not None else [],
            )
        )

        if reply.message_type == MessageType.ERROR:
            raise Exception(reply.body[0] if reply.body else reply.error_name)

        return reply.body

    async def _get_objects(self, member: str) -> List[Tuple[str, dict]]:
        body = await self._call_manager(member)

        if not isinstance(body[0], list):
            raise Exception("Invalid return type")

        return [(path, variant_to_python(properties)) for path, properties in body[0]]

    async def get_technologies(self) -> List[Tuple[str, dict]]:
        return await self._get_objects("GetTechnologies")

    async def get_services(self) -> List[Tuple[str, dict]]:
        return await self._get_objects("GetServices")

    async def register_agent(self, agent_path: str, agent: ServiceInterface) -> None:
        """Export the agent and hand it to the daemon. A refused agent is unexported again."""
        bus = await DBusManager().get_connected_bus()
        bus.export(agent_path, agent)
        try:
            await self._call_manager("RegisterAgent", "o", [agent_path])
        except Exception:
            bus.unexport(agent_path, agent)
            raise

    async def unregister_agent(
        self, agent_path: str, agent: ServiceInterface, notify_daemon: bool = True
    ) -> None:
        bus = await DBusManager().get_connected_bus()
        try:
            if notify_daemon:
                await self._call_manager("UnregisterAgent", "o", [agent_path])
        finally:
            bus.unexport(agent_path, agent)

    async def connect(self) -> None:
        """Connect the system bus, signal subscriptions below need it"""
        await DBusManager().get_connected_bus()

    def subscribe_manager_signal(self, signal: str, callback: Callable[..., Any]) -> int:
        manager = DBusManager()
        interface = manager.get_interface(
            self.BUS_NAME, self.MANAGER_OBJ_PATH, self.MANAGER_INTROSPECTION, self.MANAGER_IFACE
        )
        return manager.subscribe(interface, signal, callback)

    def unsubscribe(self, token: int) -> None:
        DBusManager().unsubscribe(token)

    def technology_proxy(self, path: str) -> Optional[RemoteObjectProxy]:
        return RemoteObjectProxy(
            self.BUS_NAME, path, self.TECHNOLOGY_IFACE, self.TECHNOLOGY_INTROSPECTION
        )

    def service_proxy(self, path: str) -> RemoteObjectProxy:
        return RemoteObjectProxy(
            self.BUS_NAME, path, self.SERVICE_IFACE, self.SERVICE_INTROSPECTION
        )


class ConnmanVpnService(ConnmanService):
    """
    The VPN daemon reports 'connections' instead of services and has no technology objects.
    Connections are tagged with the 'vpn' type and grouped under a synthetic technology.
    """

    BUS_NAME = definition.CONNMAN_VPN_BUS_NAME
    MANAGER_OBJ_PATH = definition.CONNMAN_VPN_MANAGER_OBJ_PATH
    MANAGER_IFACE = definition.CONNMAN_VPN_MANAGER_IFACE
    SERVICE_IFACE = definition.CONNMAN_VPN_CONNECTION_IFACE
    MANAGER_INTROSPECTION = CONNMAN_VPN_MANAGER_INTROSPECTION
    SERVICE_INTROSPECTION = CONNMAN_VPN_CONNECTION_INTROSPECTION

    async def get_technologies(self) -> List[Tuple[str, dict]]:
        return [
            (
                definition.CONNMAN_VPN_TECHNOLOGY_OBJ_PATH,
                {
                    "Name": "VPN",
                    "Type": definition.TechnologyType.VPN.value,
                    "Powered": True,
                },
            )
        ]

    async def get_services(self) -> List[Tuple[str, dict]]:
        return [
            (path, tag_vpn_properties(properties))
            for path, properties in await self._get_objects("GetConnections")
        ]

    def technology_proxy(self, path: str) -> Optional[RemoteObjectProxy]:
        return None


def tag_vpn_properties(properties: dict) -> dict:
    """Return a copy of VPN connection properties marked with the 'vpn' service type"""
    tagged = dict(properties)
    tagged["Type"] = definition.ServiceType.VPN.value
    return tagged
