"""Tests for per-daemon sessions and the applet lifecycle."""

import asyncio

import pytest

from connman_applet.applet import ConnmanApplet, ConnmanSession, VpnSession
from connman_applet.dbus_manager import DBusManager
from connman_applet.definition import CONNMAN_VPN_TECHNOLOGY_OBJ_PATH

from conftest import (
    ETHERNET_TECHNOLOGY,
    WIFI_TECHNOLOGY,
    FakeClient,
    wifi_service,
)

CABLE = "/net/connman/service/ethernet_080027a1b2c3_cable"
VPN_CONNECTION = "/net/connman/vpn/connection/10_0_0_1_example_com"
VPN_TECHNOLOGY = (
    CONNMAN_VPN_TECHNOLOGY_OBJ_PATH,
    {"Name": "VPN", "Type": "vpn", "Powered": True},
)


class GatedClient(FakeClient):
    """
    Exports the agent like the bus does, rejecting a second export on the same path, and holds
    RegisterAgent until the gate opens.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.exported = []
        self.gate = None

    async def register_agent(self, agent_path, agent):
        if agent_path in self.exported:
            raise ValueError(f"An interface is already exported at {agent_path}")
        self.exported.append(agent_path)
        if self.gate is not None:
            await self.gate.wait()
        await super().register_agent(agent_path, agent)

    async def unregister_agent(self, agent_path, agent, notify_daemon=True):
        self.exported.remove(agent_path)
        await super().unregister_agent(agent_path, agent, notify_daemon)


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture
def connman_client():
    return FakeClient(
        technologies=[WIFI_TECHNOLOGY, ETHERNET_TECHNOLOGY],
        services=[
            ("svc1", wifi_service()),
            (CABLE, {"Type": "ethernet", "State": "online"}),
            ("/net/connman/service/vpn_10_0_0_1", {"Type": "vpn", "State": "ready"}),
        ],
    )


@pytest.fixture
def vpn_client():
    return FakeClient(
        technologies=[VPN_TECHNOLOGY],
        services=[(VPN_CONNECTION, {"Type": "vpn", "Name": "Office", "State": "idle"})],
        with_technology_proxies=False,
    )


class TestConnmanSession:
    @pytest.fixture
    def session(self, presentation, connman_client, scheduler):
        return ConnmanSession(
            presentation,
            connman_client,
            presentation.root,
            "/net/connman/applet/agent",
            scheduler=scheduler,
        )

    def test_start_registers_and_enumerates(self, session, connman_client):
        asyncio.run(session.start())
        assert connman_client.calls == [
            "connect",
            "register_agent",
            "get_technologies",
            "get_services",
        ]
        assert connman_client.registered_agents == ["/net/connman/applet/agent"]
        assert len(connman_client.subscriptions) == 4

    def test_vpn_services_left_to_vpn_session(self, session):
        asyncio.run(session.start())
        assert session.mirror.service_index == {"svc1": "wifi", CABLE: "ethernet"}

    def test_manager_signals_reach_mirror(self, session, connman_client):
        asyncio.run(session.start())
        connman_client.emit(
            "technology_added", "/net/connman/technology/bluetooth", {"Powered": True}
        )
        connman_client.emit("property_changed", "State", "online")
        connman_client.emit(
            "services_changed",
            [["svc1", {"State": "ready"}], ["svc2", wifi_service("Cafe")]],
            [CABLE],
        )
        connman_client.emit("technology_removed", "/net/connman/technology/ethernet")

        mirror = session.mirror
        assert "bluetooth" in mirror.technologies
        assert "ethernet" not in mirror.technologies
        assert mirror.properties == {"State": "online"}
        assert mirror.technologies["wifi"].services["svc1"].state == "ready"
        assert mirror.service_index == {"svc1": "wifi", "svc2": "wifi"}

    def test_stop_clears_everything(self, session, connman_client, presentation):
        asyncio.run(session.start())
        session.stop()
        assert connman_client.subscriptions == {}
        assert session.mirror.technologies == {}
        assert presentation.root.children == []
        assert presentation.indicators.children == []

    def test_release_after_vanish_skips_daemon(self, session, connman_client):
        asyncio.run(session.start())
        session.stop()
        asyncio.run(session.release_remote(notify_daemon=False))
        assert connman_client.calls[-1] == "unregister_agent notify=False"
        assert connman_client.registered_agents == []

    def test_stop_before_start_finishes(self, session, connman_client):
        async def scenario():
            task = asyncio.ensure_future(session.start())
            session.stop()
            await task

        asyncio.run(scenario())
        assert connman_client.subscriptions == {}
        assert "get_technologies" not in connman_client.calls

    def test_release_waits_for_registration_in_flight(self, presentation, scheduler):
        client = GatedClient(technologies=[WIFI_TECHNOLOGY])
        session = ConnmanSession(
            presentation, client, presentation.root, "/a", scheduler=scheduler
        )

        async def scenario():
            client.gate = asyncio.Event()
            start = asyncio.ensure_future(session.start())
            await settle()
            assert client.exported == ["/a"]

            session.stop()
            release = asyncio.ensure_future(session.release_remote(notify_daemon=False))
            await settle()
            assert not release.done()

            client.gate.set()
            await asyncio.gather(start, release)

        asyncio.run(scenario())
        assert client.exported == []
        assert client.calls[-1] == "unregister_agent notify=False"
        assert not session.registered
        assert "get_technologies" not in client.calls

    def test_release_after_failed_registration_does_nothing(self, presentation, scheduler):
        client = FakeClient()

        async def refuse(agent_path, agent):
            raise Exception("net.connman.Error.AlreadyExists")

        client.register_agent = refuse
        session = ConnmanSession(
            presentation, client, presentation.root, "/a", scheduler=scheduler
        )
        asyncio.run(session.start())
        session.stop()
        asyncio.run(session.release_remote())
        assert not any(call.startswith("unregister_agent") for call in client.calls)


class TestVpnSession:
    @pytest.fixture
    def session(self, presentation, vpn_client):
        return VpnSession(
            presentation, vpn_client, presentation.root, "/net/connman/applet/vpn_agent"
        )

    def test_connections_mirrored_under_synthetic_technology(self, session):
        asyncio.run(session.start())
        technology = session.mirror.technologies["vpn"]
        assert technology.section.visible
        assert session.mirror.service_index == {VPN_CONNECTION: "vpn"}
        assert technology.services[VPN_CONNECTION].label == "Office"

    def test_connection_added_is_tagged(self, session, vpn_client):
        asyncio.run(session.start())
        other = "/net/connman/vpn/connection/10_0_0_2_example_org"
        vpn_client.emit("connection_added", other, {"Name": "Lab", "State": "idle"})
        assert session.mirror.service_index[other] == "vpn"
        assert session.mirror.technologies["vpn"].services[other].properties["Type"] == "vpn"

    def test_connection_removed(self, session, vpn_client):
        asyncio.run(session.start())
        vpn_client.emit("connection_removed", VPN_CONNECTION)
        assert session.mirror.service_index == {}

    def test_agent_uses_vpn_interface(self, session):
        assert session.agent_interface.name == "net.connman.vpn.Agent"


class TestConnmanApplet:
    @pytest.fixture
    def bus(self, system_bus):
        return system_bus

    @pytest.fixture
    def applet(self, presentation, connman_client, vpn_client, bus, scheduler):
        return ConnmanApplet(
            presentation,
            client=connman_client,
            vpn_client=vpn_client,
            agent_path="/net/connman/applet/agent",
            vpn_agent_path="/net/connman/applet/vpn_agent",
            scan_interval=15,
            enable_vpn=True,
            scheduler=scheduler,
        )

    def test_visibility_follows_daemon_presence(self, applet, bus, presentation):
        async def scenario():
            await applet.enable()
            assert not presentation.visible

            bus.owner_changed("net.connman", "", ":1.1")
            await settle()
            assert presentation.visible
            assert sorted(applet.session.mirror.technologies) == ["ethernet", "wifi"]

            bus.owner_changed("net.connman.vpn", "", ":1.2")
            await settle()
            assert list(applet.vpn_session.mirror.technologies) == ["vpn"]

            bus.owner_changed("net.connman", ":1.1", "")
            await settle()
            assert applet.session is None
            assert applet.connman_section.children == []
            assert len(applet.vpn_section.children) == 1
            assert presentation.visible

            bus.owner_changed("net.connman.vpn", ":1.2", "")
            await settle()
            assert not presentation.visible

            await applet.disable()

        asyncio.run(scenario())

    def test_reappearance_builds_fresh_mirror(self, applet, bus, connman_client):
        async def scenario():
            await applet.enable()
            bus.owner_changed("net.connman", "", ":1.1")
            await settle()
            first = applet.session
            bus.owner_changed("net.connman", ":1.1", "")
            bus.owner_changed("net.connman", "", ":1.3")
            await settle()
            assert applet.session is not first
            assert first.mirror.technologies == {}
            assert applet.session.mirror.service_index == {"svc1": "wifi", CABLE: "ethernet"}
            await applet.disable()

        asyncio.run(scenario())
        assert connman_client.calls.count("get_technologies") == 2

    def test_disable_unregisters_agents(self, applet, bus, connman_client, vpn_client):
        async def scenario():
            await applet.enable()
            bus.owner_changed("net.connman", "", ":1.1")
            bus.owner_changed("net.connman.vpn", "", ":1.2")
            await settle()
            await applet.disable()

        asyncio.run(scenario())
        assert "unregister_agent notify=True" in connman_client.calls
        assert "unregister_agent notify=True" in vpn_client.calls
        assert connman_client.registered_agents == []
        assert DBusManager().subscription_count == 0
        assert bus.handler_count() == 0

    def test_vpn_watch_can_be_disabled(self, presentation, connman_client, vpn_client, bus):
        applet = ConnmanApplet(
            presentation,
            client=connman_client,
            vpn_client=vpn_client,
            agent_path="/a",
            vpn_agent_path="/b",
            scan_interval=15,
            enable_vpn=False,
        )
        assert [watcher.name for watcher in applet.watchers] == ["net.connman"]

    def test_vanish_during_agent_registration(self, presentation, bus, scheduler):
        """The agent exported by a session that vanished mid-registration is released."""
        client = GatedClient(technologies=[WIFI_TECHNOLOGY])
        applet = ConnmanApplet(
            presentation,
            client=client,
            vpn_client=FakeClient(),
            agent_path="/net/connman/applet/agent",
            vpn_agent_path="/net/connman/applet/vpn_agent",
            scan_interval=15,
            enable_vpn=False,
            scheduler=scheduler,
        )

        async def scenario():
            client.gate = asyncio.Event()
            await applet.enable()
            bus.owner_changed("net.connman", "", ":1.1")
            await settle()
            assert client.exported == ["/net/connman/applet/agent"]

            bus.owner_changed("net.connman", ":1.1", "")
            await settle()
            client.gate.set()
            await settle()
            assert client.exported == []

            bus.owner_changed("net.connman", "", ":1.4")
            await settle()
            assert applet.session.registered
            assert client.exported == ["/net/connman/applet/agent"]
            assert sorted(applet.session.mirror.technologies) == ["wifi"]
            await applet.disable()

        asyncio.run(scenario())
        assert client.exported == []
        assert client.calls.count("register_agent") == 2
        assert "unregister_agent notify=False" in client.calls
