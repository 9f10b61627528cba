#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Host lifecycle of the applet: watch the ConnMan and ConnMan VPN bus names and build one session
(mirror tree, agent, signal subscriptions) per daemon presence.
"""

import asyncio
from syslog import syslog, LOG_INFO
from typing import Callable, List, Optional, Set

from connman_applet import definition
from connman_applet.agent import ConnectionAgent, create_agent_interface
from connman_applet.dbus_manager import BusNameWatcher, DBusManager
from connman_applet.mirror.manager import ManagerMirror
from connman_applet.mirror.messages import (
    PropertyChanged,
    ServiceChanged,
    ServiceRemoved,
    TechnologyAdded,
    TechnologyRemoved,
)
from connman_applet.presentation import MenuElement, Presentation
from connman_applet.services.connman_service import (
    ConnmanService,
    ConnmanVpnService,
    tag_vpn_properties,
)
from connman_applet.settings import AppletSettings
from connman_applet.utils import log_exception, run_in_background


class ConnmanSession(object):
    """
    Everything that exists while net.connman owns its name. A session is never reused: when the
    daemon comes back a new session starts from an empty mirror.
    """

    VPN = False

    def __init__(
        self,
        presentation: Presentation,
        client,
        container: MenuElement,
        agent_path: str,
        scan_interval: float = definition.DEFAULT_SCAN_INTERVAL_SECONDS,
        scheduler: Optional[Callable] = None,
    ) -> None:
        self.client = client
        self.agent_path = agent_path
        self.mirror = ManagerMirror(
            presentation,
            client,
            container,
            ignored_service_types=self.ignored_service_types(),
            scan_interval=scan_interval,
            scheduler=scheduler,
        )
        self.agent = ConnectionAgent(presentation)
        self.agent_interface = create_agent_interface(self.agent, vpn=self.VPN)
        self.registered = False
        self.closed = False
        self._tokens: List[int] = []
        self._registration: Optional[asyncio.Future] = None

    def ignored_service_types(self):
        # VPN connections are mirrored by the VPN session
        return (definition.ServiceType.VPN.value,)

    def subscribe(self) -> List[int]:
        dispatch = self.mirror.dispatch
        return [
            self.client.subscribe_manager_signal(
                "technology_added",
                lambda path, properties: dispatch(TechnologyAdded(path, properties)),
            ),
            self.client.subscribe_manager_signal(
                "technology_removed", lambda path: dispatch(TechnologyRemoved(path))
            ),
            self.client.subscribe_manager_signal(
                "property_changed", lambda name, value: dispatch(PropertyChanged(name, value))
            ),
            self.client.subscribe_manager_signal("services_changed", self.services_changed),
        ]

    def services_changed(self, changed: list, removed: list) -> None:
        self.mirror.dispatch(ServiceChanged([(path, properties) for path, properties in changed]))
        self.mirror.dispatch(ServiceRemoved(list(removed)))

    async def _register_agent(self) -> bool:
        try:
            await self.client.register_agent(self.agent_path, self.agent_interface)
        except Exception as exception:
            log_exception(exception, f"Failed to register agent {self.agent_path}: ")
            return False
        return True

    async def start(self) -> None:
        await self.client.connect()
        if self.closed:
            return
        self._tokens = self.subscribe()

        # release_remote() waits for this before unexporting the agent
        self._registration = asyncio.ensure_future(self._register_agent())
        registered = await asyncio.shield(self._registration)
        if self.closed:
            return
        self.registered = registered

        await self.mirror.resync_all()

    def stop(self) -> None:
        """Drop the mirror tree and every local subscription"""
        self.closed = True
        for token in self._tokens:
            try:
                self.client.unsubscribe(token)
            except KeyError as exception:
                log_exception(exception, "Failed to unsubscribe manager signal: ")
        self._tokens = []
        self.agent.release()
        self.mirror.close()

    async def release_remote(self, notify_daemon: bool = True) -> None:
        """Unregister and unexport the agent, once a registration in flight has settled"""
        registration, self._registration = self._registration, None
        if registration is None:
            return
        registered = (await asyncio.gather(registration, return_exceptions=True))[0]
        self.registered = False
        if registered is not True:
            return
        try:
            await self.client.unregister_agent(
                self.agent_path, self.agent_interface, notify_daemon
            )
        except Exception as exception:
            log_exception(exception, f"Failed to unregister agent {self.agent_path}: ")


class VpnSession(ConnmanSession):
    """Everything that exists while net.connman.vpn owns its name"""

    VPN = True

    def ignored_service_types(self):
        return ()

    def subscribe(self) -> List[int]:
        dispatch = self.mirror.dispatch
        return [
            self.client.subscribe_manager_signal(
                "connection_added",
                lambda path, properties: dispatch(
                    ServiceChanged([(path, tag_vpn_properties(properties))])
                ),
            ),
            self.client.subscribe_manager_signal(
                "connection_removed", lambda path: dispatch(ServiceRemoved([path]))
            ),
        ]


class ConnmanApplet(object):
    def __init__(
        self,
        presentation: Presentation,
        client=None,
        vpn_client=None,
        dbus_manager: Optional[DBusManager] = None,
        agent_path: Optional[str] = None,
        vpn_agent_path: Optional[str] = None,
        scan_interval: Optional[float] = None,
        enable_vpn: Optional[bool] = None,
        scheduler: Optional[Callable] = None,
    ) -> None:
        self.presentation = presentation
        self.client = client if client is not None else ConnmanService()
        self.vpn_client = vpn_client if vpn_client is not None else ConnmanVpnService()
        self.agent_path = agent_path or AppletSettings.get_agent_path()
        self.vpn_agent_path = vpn_agent_path or AppletSettings.get_vpn_agent_path()
        self.scan_interval = scan_interval or AppletSettings.get_scan_interval()
        self.scheduler = scheduler
        if enable_vpn is None:
            enable_vpn = AppletSettings.get_vpn_enabled()

        self.session: Optional[ConnmanSession] = None
        self.vpn_session: Optional[VpnSession] = None
        self._tasks: Set[asyncio.Future] = set()

        # ConnMan technologies come before the VPN section
        self.connman_section = presentation.create_section()
        self.vpn_section = presentation.create_section()
        presentation.root.add_child(self.connman_section)
        presentation.root.add_child(self.vpn_section)

        self.watchers = [
            BusNameWatcher(
                definition.CONNMAN_BUS_NAME,
                self.connman_appeared,
                self.connman_vanished,
                dbus_manager,
            )
        ]
        if enable_vpn:
            self.watchers.append(
                BusNameWatcher(
                    definition.CONNMAN_VPN_BUS_NAME,
                    self.vpn_appeared,
                    self.vpn_vanished,
                    dbus_manager,
                )
            )

    @property
    def visible(self) -> bool:
        return self.session is not None or self.vpn_session is not None

    def _update_visibility(self) -> None:
        self.presentation.set_visible(self.visible)

    def _run(self, coroutine, description: str) -> asyncio.Future:
        task = run_in_background(coroutine, description)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def connman_appeared(self) -> None:
        syslog(LOG_INFO, "ConnMan appeared, building mirror")
        self.session = ConnmanSession(
            self.presentation,
            self.client,
            self.connman_section,
            self.agent_path,
            self.scan_interval,
            self.scheduler,
        )
        self._run(self.session.start(), "ConnMan session start")
        self._update_visibility()

    def connman_vanished(self) -> None:
        syslog(LOG_INFO, "ConnMan vanished, clearing mirror")
        session, self.session = self.session, None
        if session is not None:
            session.stop()
            self._run(session.release_remote(notify_daemon=False), "ConnMan session release")
        self._update_visibility()

    def vpn_appeared(self) -> None:
        syslog(LOG_INFO, "ConnMan VPN appeared, building mirror")
        self.vpn_session = VpnSession(
            self.presentation,
            self.vpn_client,
            self.vpn_section,
            self.vpn_agent_path,
            self.scan_interval,
            self.scheduler,
        )
        self._run(self.vpn_session.start(), "ConnMan VPN session start")
        self._update_visibility()

    def vpn_vanished(self) -> None:
        syslog(LOG_INFO, "ConnMan VPN vanished, clearing mirror")
        session, self.vpn_session = self.vpn_session, None
        if session is not None:
            session.stop()
            self._run(session.release_remote(notify_daemon=False), "ConnMan VPN session release")
        self._update_visibility()

    async def enable(self) -> None:
        self._update_visibility()
        for watcher in self.watchers:
            await watcher.start()

    async def disable(self) -> None:
        """Tear down both sessions while the daemons are still reachable, then stop watching"""
        for attribute in ("session", "vpn_session"):
            session = getattr(self, attribute)
            if session is None:
                continue
            setattr(self, attribute, None)
            session.stop()
            await session.release_remote(notify_daemon=True)

        for watcher in self.watchers:
            await watcher.stop()

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._update_visibility()
