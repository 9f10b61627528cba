#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
System bus connection, signal subscriptions on proxy interfaces and bus name watching
"""

from syslog import syslog, LOG_DEBUG, LOG_ERR, LOG_INFO
from typing import Any, Callable, Dict, Optional, Tuple

from dbus_fast import Message, MessageType
from dbus_fast.constants import BusType
from dbus_fast.aio import MessageBus, ProxyInterface

from connman_applet.definition import DBUS_BUS_NAME, DBUS_IFACE, DBUS_OBJ_PATH
from connman_applet.introspection import DBUS_INTROSPECTION
from connman_applet.utils import Singleton, log_exception, variant_to_python


class DBusManager(object, metaclass=Singleton):
    def __init__(self) -> None:
        self._bus = None
        self._subscriptions: Dict[int, Tuple[ProxyInterface, str, Callable]] = {}
        self._next_token = 1

    async def get_bus(self) -> Optional[MessageBus]:
        if self._bus is None:
            try:
                self._bus = await MessageBus(bus_type=BusType.SYSTEM).connect()
            except Exception as e:
                syslog(LOG_ERR, f"Could not connect message bus: {str(e)}")
                self._bus = None
        return self._bus

    async def get_connected_bus(self) -> MessageBus:
        bus = await self.get_bus()
        if bus is None:
            raise Exception("System bus unavailable")
        return bus

    def get_interface(
        self, bus_name: str, path: str, introspection: str, interface: str
    ) -> ProxyInterface:
        """
        Proxy interface for a remote object built from static introspection data. Requires a
        connected bus, see get_connected_bus().
        """
        if self._bus is None:
            raise Exception("System bus unavailable")
        return self._bus.get_proxy_object(bus_name, path, introspection).get_interface(
            interface
        )

    def subscribe(
        self, interface: ProxyInterface, signal: str, callback: Callable[..., Any]
    ) -> int:
        """
        Attach 'callback' to a signal of a proxy interface and return a token for unsubscribe().

        'signal' is the snake case member name used by the proxy's on_*/off_* accessors, e.g.
        'property_changed'. The callback receives the signal arguments with variants unpacked.
        Subscribing and unsubscribing are synchronous so mirrors can do either from within a
        notification.
        """
        token = self._next_token
        self._next_token += 1

        def handler(*args):
            # Unsubscribed while this signal was being delivered
            if token not in self._subscriptions:
                return
            try:
                callback(*variant_to_python(list(args)))
            except Exception as exception:
                log_exception(exception, f"Handler for {signal} signal failed: ")

        getattr(interface, f"on_{signal}")(handler)
        self._subscriptions[token] = (interface, signal, handler)
        return token

    def unsubscribe(self, token: int) -> None:
        """Detach a signal handler, raises KeyError for unknown tokens"""
        interface, signal, handler = self._subscriptions.pop(token)
        getattr(interface, f"off_{signal}")(handler)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def call_bus_daemon(self, member: str, signature: str = "", body=None) -> list:
        bus = await self.get_connected_bus()

        reply = await bus.call(
            Message(
                destination=DBUS_BUS_NAME,
                path=DBUS_OBJ_PATH,
                interface=DBUS_IFACE,
                member=member,
                signature=signature,
                body=body if body is not None else [],
            )
        )

        if reply.message_type == MessageType.ERROR:
            raise Exception(reply.body[0])

        return reply.body

    async def name_has_owner(self, name: str) -> bool:
        body = await self.call_bus_daemon("NameHasOwner", "s", [name])
        return bool(body[0])


class BusNameWatcher(object):
    """
    Track the presence of a well-known bus name and report it through the 'appeared' and
    'vanished' callbacks. Callbacks run synchronously from the NameOwnerChanged handler.
    """

    def __init__(
        self,
        name: str,
        appeared: Callable[[], None],
        vanished: Callable[[], None],
        dbus_manager: Optional[DBusManager] = None,
    ) -> None:
        self.name = name
        self._appeared = appeared
        self._vanished = vanished
        self._dbus_manager = dbus_manager
        self._token: Optional[int] = None
        self.present = False

    def _manager(self) -> DBusManager:
        if self._dbus_manager is None:
            self._dbus_manager = DBusManager()
        return self._dbus_manager

    async def start(self) -> None:
        manager = self._manager()
        await manager.get_connected_bus()
        interface = manager.get_interface(
            DBUS_BUS_NAME, DBUS_OBJ_PATH, DBUS_INTROSPECTION, DBUS_IFACE
        )
        self._token = manager.subscribe(
            interface, "name_owner_changed", self.name_owner_changed
        )
        if await manager.name_has_owner(self.name):
            self._set_present(True)

    async def stop(self) -> None:
        if self._token is not None:
            self._manager().unsubscribe(self._token)
            self._token = None
        self._set_present(False)

    def name_owner_changed(self, name: str, old_owner: str, new_owner: str) -> None:
        if name != self.name:
            return
        syslog(
            LOG_DEBUG,
            f"Owner of {name} changed from '{old_owner}' to '{new_owner}'",
        )
        # A direct hand-over between two owners is reported as vanish + appear
        if old_owner:
            self._set_present(False)
        if new_owner:
            self._set_present(True)

    def _set_present(self, present: bool) -> None:
        if present == self.present:
            return
        self.present = present
        if present:
            syslog(LOG_INFO, f"{self.name} appeared on the bus")
            self._appeared()
        else:
            syslog(LOG_INFO, f"{self.name} vanished from the bus")
            self._vanished()
