#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Module to mirror one remote ConnMan service
"""

from syslog import syslog, LOG_DEBUG
from typing import Any, Callable, Dict, List, Optional

from connman_applet import definition
from connman_applet.definition import (
    ServiceState,
    ServiceTraits,
    ServiceType,
    SERVICE_TRAITS,
)
from connman_applet.presentation import MenuElement, Presentation
from connman_applet.utils import UnknownTypeError, log_exception, merge_properties


def signal_grade(strength: Optional[int]) -> str:
    """Bucket a 0-100 signal strength into the grade used by the icon names"""
    if strength is None:
        return "none"
    if strength > 80:
        return "excellent"
    if strength > 55:
        return "good"
    if strength > 30:
        return "ok"
    if strength > 5:
        return "weak"
    return "none"


def status_icon(traits: ServiceTraits, state: str, strength: Optional[int] = None) -> str:
    if state in definition.CONNECTED_STATES:
        if traits.signal_graded:
            return traits.connected_icon.format(grade=signal_grade(strength))
        return traits.connected_icon
    if state in definition.ACQUIRING_STATES:
        return traits.acquiring_icon
    if state in definition.OFFLINE_STATES:
        return traits.offline_icon
    return definition.ICON_ERROR


def action_label(state: str) -> str:
    if state in definition.OFFLINE_STATES:
        return definition.ACTION_CONNECT
    if state == ServiceState.FAILURE.value:
        return definition.ACTION_RECONNECT
    return definition.ACTION_DISCONNECT


def hidden_network_label(security: Optional[str]) -> str:
    return definition.HIDDEN_NETWORK_LABELS.get(security, definition.HIDDEN_NETWORK_LABEL)


def security_badge(security: Optional[str]) -> Optional[str]:
    if not security or security == "none":
        return None
    return definition.SECURITY_BADGES.get(security, definition.SECURITY_BADGE_SECURED)


class ServiceMirror(object):
    """
    Reconciled state of one remote service.

    The mirror owns a sub-menu element (label, status text, icon, connect/disconnect switch and
    settings item) plus an external indicator. Its state only changes through update(), which is
    fed from the service's PropertyChanged stream and from manager level ServicesChanged batches.
    """

    def __init__(
        self,
        path: str,
        service_type: str,
        proxy,
        presentation: Presentation,
        properties: Optional[dict] = None,
        on_property_changed: Optional[Callable[[str, dict], Any]] = None,
    ) -> None:
        try:
            self.type = ServiceType(service_type)
        except ValueError:
            raise UnknownTypeError(f"Unknown service type '{service_type}' for {path}")

        self.id = path
        self.traits = SERVICE_TRAITS[self.type]
        self.proxy = proxy
        self.presentation = presentation
        self.properties: Dict[str, Any] = {}
        self.state = ServiceState.IDLE.value
        self.destroyed = False
        self._on_property_changed = on_property_changed
        self._subscription: Optional[int] = None

        self.element: MenuElement = presentation.create_submenu(self.traits.default_label)
        self.switch_item = presentation.create_item(
            definition.ACTION_CONNECT, self.connect_or_disconnect
        )
        self.element.add_child(self.switch_item)
        self.settings_item = presentation.create_item(
            self.traits.settings_label, self.open_settings
        )
        self.element.add_child(self.settings_item)
        self.indicator: MenuElement = presentation.create_indicator()

        try:
            self.update(properties or {})
        except Exception:
            self.destroy()
            raise

        if proxy is not None:
            self._subscription = proxy.subscribe_property_changed(self._property_changed)

    def __repr__(self) -> str:
        return f"<ServiceMirror {self.type.value} {self.id} {self.state}>"

    @property
    def name(self) -> Optional[str]:
        return self.properties.get("Name")

    @property
    def security(self) -> Optional[str]:
        security: List[str] = self.properties.get("Security") or []
        return security[0] if security else None

    @property
    def strength(self) -> Optional[int]:
        return self.properties.get("Strength")

    @property
    def interface(self) -> Optional[str]:
        ethernet = self.properties.get("Ethernet")
        if isinstance(ethernet, dict):
            return ethernet.get("Interface") or None
        return None

    @property
    def is_active(self) -> bool:
        """Connecting or connected"""
        return self.state not in definition.INACTIVE_STATES

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        if self.type == ServiceType.WIFI:
            return hidden_network_label(self.security)
        return self.traits.default_label

    @property
    def action(self) -> str:
        return action_label(self.state)

    @property
    def icon(self) -> str:
        return status_icon(self.traits, self.state, self.strength)

    def _property_changed(self, name: str, value: Any) -> None:
        # Route through the owner when there is one so that aggregates are recomputed
        if self._on_property_changed is not None:
            self._on_property_changed(self.id, {name: value})
        else:
            self.update({name: value})

    def update(self, delta: dict) -> None:
        merge_properties(self.properties, delta)
        if "State" in delta:
            self.state = str(delta["State"])
        self.refresh()

    def refresh(self) -> None:
        icon = self.icon
        self.element.set_label(self.label)
        self.element.set_status(self.state)
        self.element.set_icon(icon)
        self.switch_item.set_label(self.action)
        self.indicator.set_icon(icon)
        if self.traits.security_badge:
            self.element.set_badge(security_badge(self.security))
        if self.traits.hide_when_inactive:
            self.element.set_visible(self.is_active)
        else:
            self.element.show()

    def connect_or_disconnect(self) -> None:
        if self.proxy is None:
            return
        if self.state in definition.CONNECTABLE_STATES:
            syslog(LOG_DEBUG, f"Connecting {self.id}")
            self.proxy.request_connect()
        else:
            syslog(LOG_DEBUG, f"Disconnecting {self.id}")
            self.proxy.request_disconnect()

    def open_settings(self) -> None:
        self.presentation.launch_settings(self.traits.settings_target)

    def destroy(self) -> None:
        if self.destroyed:
            return
        self.destroyed = True
        if self._subscription is not None:
            try:
                self.proxy.disconnect_signal(self._subscription)
            except Exception as exception:
                log_exception(exception, f"Failed to disconnect service proxy {self.id}: ")
            self._subscription = None
        self.indicator.destroy()
        self.element.destroy()
