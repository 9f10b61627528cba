#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Interface between the mirror and whatever renders it.

The mirror only ever calls the methods declared by MenuElement, PickerView, CredentialsDialog and
Presentation. User actions come back through the callbacks handed to the factory methods. The
Headless* classes implement the interface in memory; they are used when no desktop shell is
attached and log what a shell would display.
"""

from dataclasses import dataclass
from syslog import syslog, LOG_DEBUG, LOG_INFO
from typing import Callable, Dict, List, Optional


@dataclass(frozen=True)
class DialogField:
    """One entry of a credentials dialog"""

    name: str
    secret: bool = True


class MenuElement(object):
    """One rendered element: a section, sub-menu, menu item or panel indicator"""

    @property
    def visible(self) -> bool:
        raise NotImplementedError

    def show(self) -> None:
        raise NotImplementedError

    def hide(self) -> None:
        raise NotImplementedError

    def set_visible(self, visible: bool) -> None:
        if visible:
            self.show()
        else:
            self.hide()

    def set_label(self, text: str) -> None:
        raise NotImplementedError

    def set_status(self, text: str) -> None:
        raise NotImplementedError

    def set_icon(self, icon_name: Optional[str]) -> None:
        raise NotImplementedError

    def set_badge(self, icon_name: Optional[str]) -> None:
        raise NotImplementedError

    def add_child(self, child: "MenuElement", position: Optional[int] = None) -> None:
        raise NotImplementedError

    def destroy(self) -> None:
        raise NotImplementedError


class PickerView(object):
    """List of selectable services shown while a picker session is open"""

    def add_entry(self, key: str, label: str, icon_name: Optional[str]) -> MenuElement:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError


class CredentialsDialog(object):
    def close(self) -> None:
        raise NotImplementedError


class Presentation(object):
    """Factory for the elements the mirror renders into"""

    @property
    def root(self) -> MenuElement:
        raise NotImplementedError

    def create_section(self, label: str = "") -> MenuElement:
        raise NotImplementedError

    def create_submenu(self, label: str) -> MenuElement:
        raise NotImplementedError

    def create_item(self, label: str, on_activate: Callable[[], None]) -> MenuElement:
        raise NotImplementedError

    def create_indicator(self) -> MenuElement:
        raise NotImplementedError

    def open_picker(
        self,
        title: str,
        on_select: Callable[[str], None],
        on_cancel: Callable[[], None],
    ) -> PickerView:
        raise NotImplementedError

    def open_credentials_dialog(
        self,
        title: str,
        fields: List[DialogField],
        on_confirm: Callable[[Dict[str, str]], None],
        on_cancel: Callable[[], None],
    ) -> CredentialsDialog:
        raise NotImplementedError

    def launch_settings(self, target: str) -> None:
        raise NotImplementedError

    def fixup_after_removal(self, container: MenuElement) -> None:
        """Called after a technology or service element was removed from 'container'"""
        raise NotImplementedError

    def set_visible(self, visible: bool) -> None:
        """Show or hide the whole menu and every indicator"""
        raise NotImplementedError


class HeadlessElement(MenuElement):
    def __init__(
        self,
        kind: str,
        label: str = "",
        on_activate: Optional[Callable[[], None]] = None,
        visible: bool = True,
    ) -> None:
        self.kind = kind
        self.label = label
        self.status = ""
        self.icon: Optional[str] = None
        self.badge: Optional[str] = None
        self.children: List["HeadlessElement"] = []
        self.parent: Optional["HeadlessElement"] = None
        self.destroyed = False
        self._visible = visible
        self._on_activate = on_activate

    def __repr__(self) -> str:
        return f"<HeadlessElement {self.kind} '{self.label}'>"

    @property
    def visible(self) -> bool:
        return self._visible

    def show(self) -> None:
        self._visible = True

    def hide(self) -> None:
        self._visible = False

    def set_label(self, text: str) -> None:
        self.label = text

    def set_status(self, text: str) -> None:
        self.status = text

    def set_icon(self, icon_name: Optional[str]) -> None:
        if icon_name != self.icon:
            syslog(LOG_DEBUG, f"{self.kind} '{self.label}' icon: {icon_name}")
        self.icon = icon_name

    def set_badge(self, icon_name: Optional[str]) -> None:
        self.badge = icon_name

    def add_child(self, child: MenuElement, position: Optional[int] = None) -> None:
        if child.parent is not None:
            child.parent.children.remove(child)
        child.parent = self
        if position is None or position >= len(self.children):
            self.children.append(child)
        else:
            self.children.insert(position, child)

    def destroy(self) -> None:
        for child in list(self.children):
            child.destroy()
        if self.parent is not None:
            self.parent.children.remove(self)
            self.parent = None
        self.destroyed = True

    def activate(self) -> None:
        """Simulate the user activating this element"""
        if self._on_activate is not None:
            self._on_activate()

    def find(self, label: str) -> Optional["HeadlessElement"]:
        """Depth-first search for a descendant with the given label"""
        for child in self.children:
            if child.label == label:
                return child
            found = child.find(label)
            if found is not None:
                return found
        return None


class HeadlessPicker(PickerView):
    def __init__(
        self,
        title: str,
        on_select: Callable[[str], None],
        on_cancel: Callable[[], None],
    ) -> None:
        self.title = title
        self.entries: Dict[str, HeadlessElement] = {}
        self.closed = False
        self._on_select = on_select
        self._on_cancel = on_cancel

    def add_entry(self, key: str, label: str, icon_name: Optional[str]) -> MenuElement:
        entry = HeadlessElement("picker-entry", label, lambda: self.select(key))
        entry.set_icon(icon_name)
        self.entries[key] = entry
        return entry

    def select(self, key: str) -> None:
        self._on_select(key)

    def cancel(self) -> None:
        self._on_cancel()

    def close(self) -> None:
        self.closed = True


class HeadlessDialog(CredentialsDialog):
    def __init__(
        self,
        title: str,
        fields: List[DialogField],
        on_confirm: Callable[[Dict[str, str]], None],
        on_cancel: Callable[[], None],
    ) -> None:
        self.title = title
        self.fields = fields
        self.closed = False
        self._on_confirm = on_confirm
        self._on_cancel = on_cancel

    def confirm(self, values: Dict[str, str]) -> None:
        self.close()
        self._on_confirm(values)

    def cancel(self) -> None:
        self.close()
        self._on_cancel()

    def close(self) -> None:
        self.closed = True


class HeadlessPresentation(Presentation):
    def __init__(self) -> None:
        self._root = HeadlessElement("root")
        self.indicators = HeadlessElement("indicators")
        self.pickers: List[HeadlessPicker] = []
        self.dialogs: List[HeadlessDialog] = []
        self.settings_launched: List[str] = []
        self.fixups = 0
        self.visible = True

    @property
    def root(self) -> HeadlessElement:
        return self._root

    def create_section(self, label: str = "") -> HeadlessElement:
        return HeadlessElement("section", label)

    def create_submenu(self, label: str) -> HeadlessElement:
        return HeadlessElement("submenu", label)

    def create_item(self, label: str, on_activate: Callable[[], None]) -> HeadlessElement:
        return HeadlessElement("item", label, on_activate)

    def create_indicator(self) -> HeadlessElement:
        indicator = HeadlessElement("indicator", visible=False)
        self.indicators.add_child(indicator)
        return indicator

    def open_picker(
        self,
        title: str,
        on_select: Callable[[str], None],
        on_cancel: Callable[[], None],
    ) -> HeadlessPicker:
        picker = HeadlessPicker(title, on_select, on_cancel)
        self.pickers.append(picker)
        return picker

    def open_credentials_dialog(
        self,
        title: str,
        fields: List[DialogField],
        on_confirm: Callable[[Dict[str, str]], None],
        on_cancel: Callable[[], None],
    ) -> HeadlessDialog:
        syslog(
            LOG_INFO,
            f"{title}: {', '.join(field.name for field in fields)} (no shell attached)",
        )
        dialog = HeadlessDialog(title, fields, on_confirm, on_cancel)
        self.dialogs.append(dialog)
        return dialog

    def launch_settings(self, target: str) -> None:
        self.settings_launched.append(target)

    def fixup_after_removal(self, container: MenuElement) -> None:
        self.fixups += 1

    def set_visible(self, visible: bool) -> None:
        self.visible = visible
