#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Wifi specific behavior of the technology mirror: services are grouped per physical interface,
each interface tracks how many of its services are active and offers a network picker.
"""

from syslog import syslog, LOG_DEBUG, LOG_ERR
from typing import Callable, Dict, Optional

from connman_applet import definition
from connman_applet.definition import TechnologyType, TECHNOLOGY_LABELS
from connman_applet.mirror.picker import ServicePicker
from connman_applet.mirror.service import ServiceMirror
from connman_applet.presentation import Presentation

# Interface of wifi services whose Ethernet.Interface has not been reported yet
DEFAULT_INTERFACE = ""


class WirelessInterface(object):
    def __init__(
        self,
        name: str,
        presentation: Presentation,
        on_select_network: Callable[[str], None],
    ) -> None:
        self.name = name
        self.active_count = 0
        self.services: Dict[str, ServiceMirror] = {}
        self.element = presentation.create_submenu(
            name or TECHNOLOGY_LABELS[TechnologyType.WIFI]
        )
        self.select_item = presentation.create_item(
            definition.SELECT_NETWORK_LABEL, lambda: on_select_network(self.name)
        )
        self.element.add_child(self.select_item)
        self._refresh()

    def __repr__(self) -> str:
        return f"<WirelessInterface '{self.name}' active={self.active_count}>"

    @property
    def selection_visible(self) -> bool:
        return self.select_item.visible

    def add(self, service: ServiceMirror) -> None:
        self.services[service.id] = service
        self.element.add_child(service.element)
        if service.is_active:
            self.active_count += 1
        self._refresh()

    def transition(self, was_active: bool, is_active: bool) -> None:
        if is_active and not was_active:
            self.active_count += 1
        elif was_active and not is_active:
            self.active_count -= 1
        self._refresh()

    def remove(self, service: ServiceMirror, was_active: bool) -> None:
        if self.services.pop(service.id, None) is None:
            return
        if was_active:
            self.active_count -= 1
        self._refresh()

    def _refresh(self) -> None:
        self.select_item.set_visible(self.active_count == 0)
        self.element.set_status(
            definition.INTERFACE_CONNECTED_STATUS
            if self.active_count > 0
            else definition.INTERFACE_IDLE_STATUS
        )

    def destroy(self) -> None:
        self.services.clear()
        self.element.destroy()


class WirelessExtension(object):
    """
    Hooks the wifi technology mirror calls on every service add, update and removal
    """

    def __init__(
        self,
        presentation: Presentation,
        scan_interval: float = definition.DEFAULT_SCAN_INTERVAL_SECONDS,
        scheduler: Optional[Callable] = None,
    ) -> None:
        self.presentation = presentation
        self.technology = None
        self.interfaces: Dict[str, WirelessInterface] = {}
        self.service_interfaces: Dict[str, str] = {}
        self.picker: Optional[ServicePicker] = None
        self._scan_interval = scan_interval
        self._scheduler = scheduler

    def attach(self, technology) -> None:
        self.technology = technology

    def _get_interface(self, name: str) -> WirelessInterface:
        interface = self.interfaces.get(name)
        if interface is None:
            syslog(LOG_DEBUG, f"Adding wireless interface '{name}'")
            interface = WirelessInterface(name, self.presentation, self.open_picker)
            self.interfaces[name] = interface
            self.technology.content.add_child(interface.element)
        return interface

    def _drop_default_interface(self) -> None:
        interface = self.interfaces.get(DEFAULT_INTERFACE)
        if interface is not None and not interface.services:
            picker = self._open_picker_for(DEFAULT_INTERFACE)
            if picker is not None:
                picker.close()
            del self.interfaces[DEFAULT_INTERFACE]
            interface.destroy()
            self.presentation.fixup_after_removal(self.technology.content)

    def _open_picker_for(self, name: str) -> Optional[ServicePicker]:
        if self.picker is not None and self.picker.interface == name:
            return self.picker
        return None

    def service_added(self, service: ServiceMirror) -> None:
        name = service.interface or DEFAULT_INTERFACE
        self.service_interfaces[service.id] = name
        self._get_interface(name).add(service)
        service.element.add_child(
            self.presentation.create_item(
                definition.SELECT_NETWORK_LABEL,
                lambda: self.open_picker(
                    self.service_interfaces.get(service.id, DEFAULT_INTERFACE)
                ),
            )
        )

        picker = self._open_picker_for(name)
        if picker is not None:
            picker.add_service(service)

    def service_updated(self, service: ServiceMirror, was_active: bool) -> None:
        current = self.service_interfaces.get(service.id)
        if current is None:
            syslog(LOG_ERR, f"Tried to update service {service.id} on no wireless interface")
            return

        observed = service.interface
        if current == DEFAULT_INTERFACE and observed:
            # First report of the interface, the grouping is fixed from now on
            syslog(LOG_DEBUG, f"Moving {service.id} to wireless interface '{observed}'")
            self.interfaces[current].remove(service, was_active)
            picker = self._open_picker_for(current)
            if picker is not None:
                picker.remove_service(service.id)

            self.service_interfaces[service.id] = observed
            self._get_interface(observed).add(service)
            picker = self._open_picker_for(observed)
            if picker is not None:
                picker.add_service(service)
            # The service element has been re-parented, the empty default group can go
            self._drop_default_interface()
            return

        self.interfaces[current].transition(was_active, service.is_active)
        picker = self._open_picker_for(current)
        if picker is not None:
            picker.update_service(service)

    def service_removed(self, service: ServiceMirror) -> None:
        name = self.service_interfaces.pop(service.id, None)
        if name is None:
            return
        self.interfaces[name].remove(service, service.is_active)
        picker = self._open_picker_for(name)
        if picker is not None:
            picker.remove_service(service.id)
        if name == DEFAULT_INTERFACE:
            self._drop_default_interface()

    def open_picker(self, name: str) -> ServicePicker:
        """Open the network picker for an interface, at most one picker is open at a time"""
        if self.picker is not None:
            syslog(LOG_DEBUG, "Network picker already open")
            return self.picker

        services = [
            service
            for service_id, service in self.technology.services.items()
            if self.service_interfaces.get(service_id) == name
        ]
        self.picker = ServicePicker(
            name,
            self.technology.proxy,
            self.presentation,
            services,
            scan_interval=self._scan_interval,
            scheduler=self._scheduler,
            on_closed=self._picker_closed,
        )
        return self.picker

    def _picker_closed(self, picker: ServicePicker) -> None:
        if self.picker is picker:
            self.picker = None

    def destroy(self) -> None:
        if self.picker is not None:
            self.picker.close()
        for interface in self.interfaces.values():
            interface.destroy()
        self.interfaces.clear()
        self.service_interfaces.clear()
