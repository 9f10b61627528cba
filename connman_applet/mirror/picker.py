#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to run an interactive wireless network picker session
"""

import asyncio
from syslog import syslog, LOG_DEBUG, LOG_INFO
from typing import Callable, Dict, Iterable, Optional

from connman_applet import definition
from connman_applet.mirror.service import ServiceMirror, security_badge
from connman_applet.presentation import MenuElement, Presentation


class ServicePicker(object):
    """
    One open picker: a list of the services of a wireless interface, kept current while the
    session is open, and a periodic rescan of the technology.

    'scheduler' has the signature of loop.call_later() and must return a handle with cancel().
    Entries of services that disappear are hidden rather than removed so that they can be shown
    again if the service comes back before the session closes.
    """

    def __init__(
        self,
        interface: str,
        proxy,
        presentation: Presentation,
        services: Iterable[ServiceMirror] = (),
        scan_interval: float = definition.DEFAULT_SCAN_INTERVAL_SECONDS,
        scheduler: Optional[Callable] = None,
        on_closed: Optional[Callable[["ServicePicker"], None]] = None,
    ) -> None:
        self.interface = interface
        self.proxy = proxy
        self.closed = False
        self.entries: Dict[str, MenuElement] = {}
        self.services: Dict[str, ServiceMirror] = {}
        self._scan_interval = scan_interval
        self._scheduler = scheduler or asyncio.get_running_loop().call_later
        self._timer = None
        self._on_closed = on_closed

        self.view = presentation.open_picker(
            definition.PICKER_TITLE, self._on_select, self._on_cancel
        )
        for service in services:
            self.add_service(service)

        self._scan()

    def _scan(self) -> None:
        self._timer = None
        if self.closed:
            return
        if self.proxy is not None:
            syslog(LOG_DEBUG, f"Requesting scan for picker on '{self.interface}'")
            self.proxy.request_scan()
        self._timer = self._scheduler(self._scan_interval, self._scan)

    def _refresh_entry(self, entry: MenuElement, service: ServiceMirror) -> None:
        entry.set_label(service.label)
        entry.set_icon(service.icon)
        entry.set_badge(security_badge(service.security))

    def add_service(self, service: ServiceMirror) -> None:
        if self.closed:
            return
        self.services[service.id] = service
        entry = self.entries.get(service.id)
        if entry is None:
            entry = self.view.add_entry(service.id, service.label, service.icon)
            self.entries[service.id] = entry
        self._refresh_entry(entry, service)
        entry.show()

    def update_service(self, service: ServiceMirror) -> None:
        if self.closed:
            return
        if service.id not in self.services:
            self.add_service(service)
            return
        self._refresh_entry(self.entries[service.id], service)

    def remove_service(self, service_id: str) -> None:
        if self.services.pop(service_id, None) is None:
            return
        self.entries[service_id].hide()

    def _on_select(self, service_id: str) -> None:
        service = self.services.get(service_id)
        if service is None:
            syslog(LOG_INFO, f"Selected service {service_id} is no longer available")
        else:
            service.connect_or_disconnect()
        self.close()

    def _on_cancel(self) -> None:
        self.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.view.close()
        if self._on_closed is not None:
            self._on_closed(self)
