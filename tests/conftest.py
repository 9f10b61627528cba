"""Shared fakes for the mirror tests: proxies, the daemon client and a timer scheduler."""

from types import SimpleNamespace
from typing import Callable, Dict, List, Optional, Tuple
from unittest.mock import Mock

import pytest
from dbus_fast import MessageType

from connman_applet.dbus_manager import DBusManager
from connman_applet.definition import DBUS_BUS_NAME, DBUS_IFACE, DBUS_OBJ_PATH
from connman_applet.presentation import HeadlessPresentation


class FakeProxy:
    """Stands in for RemoteObjectProxy, records requests and replays PropertyChanged."""

    def __init__(self, path: str = "/fake"):
        self.path = path
        self.subscribers: Dict[int, Callable] = {}
        self.requests: List[str] = []
        self.properties_set: List[Tuple[str, object, str]] = []
        self._next_token = 1

    def subscribe_property_changed(self, callback):
        token = self._next_token
        self._next_token += 1
        self.subscribers[token] = callback
        return token

    def disconnect_signal(self, token):
        del self.subscribers[token]

    def emit(self, name, value):
        for callback in list(self.subscribers.values()):
            callback(name, value)

    def request_connect(self):
        self.requests.append("Connect")

    def request_disconnect(self):
        self.requests.append("Disconnect")

    def request_scan(self):
        self.requests.append("Scan")

    def set_property_remote(self, name, value, signature):
        self.properties_set.append((name, value, signature))


class FakeClient:
    """Stands in for ConnmanService: canned enumerations and recorded manager subscriptions."""

    def __init__(self, technologies=None, services=None, with_technology_proxies=True):
        self.technologies = list(technologies or [])
        self.services = list(services or [])
        self.with_technology_proxies = with_technology_proxies
        self.technology_proxies: Dict[str, FakeProxy] = {}
        self.service_proxies: Dict[str, FakeProxy] = {}
        self.subscriptions: Dict[int, Tuple[str, Callable]] = {}
        self.calls: List[str] = []
        self.registered_agents: List[str] = []
        self.fail_enumeration = False
        self._next_token = 1

    def technology_proxy(self, path) -> Optional[FakeProxy]:
        if not self.with_technology_proxies:
            return None
        proxy = FakeProxy(path)
        self.technology_proxies[path] = proxy
        return proxy

    def service_proxy(self, path) -> FakeProxy:
        proxy = FakeProxy(path)
        self.service_proxies[path] = proxy
        return proxy

    async def get_technologies(self):
        self.calls.append("get_technologies")
        if self.fail_enumeration:
            raise Exception("net.connman.Error.Failed")
        return [(path, dict(properties)) for path, properties in self.technologies]

    async def get_services(self):
        self.calls.append("get_services")
        return [(path, dict(properties)) for path, properties in self.services]

    async def connect(self):
        self.calls.append("connect")

    async def register_agent(self, agent_path, agent):
        self.calls.append("register_agent")
        self.registered_agents.append(agent_path)

    async def unregister_agent(self, agent_path, agent, notify_daemon=True):
        self.calls.append(f"unregister_agent notify={notify_daemon}")
        self.registered_agents.remove(agent_path)

    def subscribe_manager_signal(self, signal, callback):
        token = self._next_token
        self._next_token += 1
        self.subscriptions[token] = (signal, callback)
        return token

    def unsubscribe(self, token):
        del self.subscriptions[token]

    def emit(self, signal, *args):
        for subscribed_signal, callback in list(self.subscriptions.values()):
            if subscribed_signal == signal:
                callback(*args)


class FakeTimer:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancel_count = 0

    @property
    def cancelled(self):
        return self.cancel_count > 0

    def cancel(self):
        self.cancel_count += 1


class FakeScheduler:
    """call_later() replacement whose timers only fire when told to."""

    def __init__(self):
        self.timers: List[FakeTimer] = []

    def __call__(self, delay, callback):
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> List[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and timer.callback]

    def fire(self):
        """Run every pending timer once"""
        for timer in self.pending:
            callback, timer.callback = timer.callback, None
            callback()


class FakeInterface:
    """ProxyInterface stand-in: on_*/off_* handler registration and signal emission."""

    def __init__(self, bus_name, path, name):
        self.bus_name = bus_name
        self.path = path
        self.name = name
        self.handlers: Dict[str, List[Callable]] = {}

    def __getattr__(self, attribute):
        action, _, signal = attribute.partition("_")
        if action == "on":
            return lambda handler: self.handlers.setdefault(signal, []).append(handler)
        if action == "off":
            return lambda handler: self._remove(signal, handler)
        raise AttributeError(attribute)

    def _remove(self, signal, handler):
        handlers = self.handlers.get(signal, [])
        if handler in handlers:
            handlers.remove(handler)
        if not handlers:
            self.handlers.pop(signal, None)

    def emit(self, signal, *args):
        for handler in list(self.handlers.get(signal, [])):
            handler(*args)


class FakeProxyObject:
    def __init__(self, bus, bus_name, path, introspection):
        self.bus = bus
        self.bus_name = bus_name
        self.path = path
        self.introspection = introspection

    def get_interface(self, name):
        key = (self.bus_name, self.path, name)
        if key not in self.bus.interfaces:
            self.bus.interfaces[key] = FakeInterface(self.bus_name, self.path, name)
        return self.bus.interfaces[key]


class FakeSystemBus:
    """
    Message bus stand-in: records calls and answers them from a reply queue, answers
    NameHasOwner from 'owned' and hands out proxy interfaces that can emit signals.
    """

    def __init__(self):
        self.messages = []
        self.replies = []
        self.owned = set()
        self.interfaces: Dict[Tuple[str, str, str], FakeInterface] = {}
        self.export = Mock()
        self.unexport = Mock()

    def reply(self, *body, error=False):
        self.replies.append(
            SimpleNamespace(
                message_type=MessageType.ERROR if error else MessageType.METHOD_RETURN,
                body=list(body),
                error_name="net.connman.Error.Failed" if error else None,
            )
        )

    async def call(self, message):
        self.messages.append(message)
        if message.member == "NameHasOwner":
            return SimpleNamespace(
                message_type=MessageType.METHOD_RETURN,
                body=[message.body[0] in self.owned],
                error_name=None,
            )
        if self.replies:
            return self.replies.pop(0)
        return SimpleNamespace(message_type=MessageType.METHOD_RETURN, body=[], error_name=None)

    def get_proxy_object(self, bus_name, path, introspection):
        return FakeProxyObject(self, bus_name, path, introspection)

    def handler_count(self):
        return sum(
            len(handlers)
            for interface in self.interfaces.values()
            for handlers in interface.handlers.values()
        )

    def emit(self, bus_name, path, interface, signal, *args):
        key = (bus_name, path, interface)
        if key in self.interfaces:
            self.interfaces[key].emit(signal, *args)

    def owner_changed(self, name, old, new):
        if new:
            self.owned.add(name)
        else:
            self.owned.discard(name)
        self.emit(DBUS_BUS_NAME, DBUS_OBJ_PATH, DBUS_IFACE, "name_owner_changed", name, old, new)


WIFI_TECHNOLOGY = ("/net/connman/technology/wifi", {"Type": "wifi", "Powered": True})
ETHERNET_TECHNOLOGY = (
    "/net/connman/technology/ethernet",
    {"Type": "ethernet", "Powered": True},
)


def wifi_service(name="Home", state="idle", interface="wlan0", **extra):
    properties = {
        "Type": "wifi",
        "Name": name,
        "State": state,
        "Strength": 70,
        "Security": ["psk"],
        "Ethernet": {"Interface": interface, "Method": "auto"},
    }
    properties.update(extra)
    return properties


@pytest.fixture
def presentation():
    return HeadlessPresentation()


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def system_bus(monkeypatch):
    """Install a FakeSystemBus on the DBusManager singleton with no subscriptions."""
    bus = FakeSystemBus()
    manager = DBusManager()
    monkeypatch.setattr(manager, "_bus", bus)
    monkeypatch.setattr(manager, "_subscriptions", {})
    return bus
