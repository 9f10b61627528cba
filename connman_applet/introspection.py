#
# SPDX-License-Identifier: LicenseRef-Ezurio-Clause
# Copyright (C) 2024 Ezurio LLC.
#
"""
Introspection data for the remote objects the applet talks to. Proxies are built from these
instead of introspecting the daemons, so signal handlers can be attached synchronously.

Signal argument types must match what the daemons emit, dbus-fast drops signals whose
signature differs.
"""

DBUS_INTROSPECTION = """
<node>
  <interface name="org.freedesktop.DBus">
    <method name="NameHasOwner">
      <arg direction="in" name="name" type="s"/>
      <arg direction="out" name="has_owner" type="b"/>
    </method>
    <signal name="NameOwnerChanged">
      <arg name="name" type="s"/>
      <arg name="old_owner" type="s"/>
      <arg name="new_owner" type="s"/>
    </signal>
  </interface>
</node>
"""

CONNMAN_MANAGER_INTROSPECTION = """
<node>
  <interface name="net.connman.Manager">
    <method name="GetProperties">
      <arg direction="out" name="properties" type="a{sv}"/>
    </method>
    <method name="GetTechnologies">
      <arg direction="out" name="technologies" type="a(oa{sv})"/>
    </method>
    <method name="GetServices">
      <arg direction="out" name="services" type="a(oa{sv})"/>
    </method>
    <method name="RegisterAgent">
      <arg direction="in" name="path" type="o"/>
    </method>
    <method name="UnregisterAgent">
      <arg direction="in" name="path" type="o"/>
    </method>
    <signal name="TechnologyAdded">
      <arg name="path" type="o"/>
      <arg name="properties" type="a{sv}"/>
    </signal>
    <signal name="TechnologyRemoved">
      <arg name="path" type="o"/>
    </signal>
    <signal name="ServicesChanged">
      <arg name="changed" type="a(oa{sv})"/>
      <arg name="removed" type="ao"/>
    </signal>
    <signal name="PropertyChanged">
      <arg name="name" type="s"/>
      <arg name="value" type="v"/>
    </signal>
  </interface>
</node>
"""

CONNMAN_TECHNOLOGY_INTROSPECTION = """
<node>
  <interface name="net.connman.Technology">
    <method name="GetProperties">
      <arg direction="out" name="properties" type="a{sv}"/>
    </method>
    <method name="SetProperty">
      <arg direction="in" name="name" type="s"/>
      <arg direction="in" name="value" type="v"/>
    </method>
    <method name="Scan"/>
    <signal name="PropertyChanged">
      <arg name="name" type="s"/>
      <arg name="value" type="v"/>
    </signal>
  </interface>
</node>
"""

CONNMAN_SERVICE_INTROSPECTION = """
<node>
  <interface name="net.connman.Service">
    <method name="GetProperties">
      <arg direction="out" name="properties" type="a{sv}"/>
    </method>
    <method name="SetProperty">
      <arg direction="in" name="name" type="s"/>
      <arg direction="in" name="value" type="v"/>
    </method>
    <method name="Connect"/>
    <method name="Disconnect"/>
    <signal name="PropertyChanged">
      <arg name="name" type="s"/>
      <arg name="value" type="v"/>
    </signal>
  </interface>
</node>
"""

CONNMAN_VPN_MANAGER_INTROSPECTION = """
<node>
  <interface name="net.connman.vpn.Manager">
    <method name="GetConnections">
      <arg direction="out" name="connections" type="a(oa{sv})"/>
    </method>
    <method name="RegisterAgent">
      <arg direction="in" name="path" type="o"/>
    </method>
    <method name="UnregisterAgent">
      <arg direction="in" name="path" type="o"/>
    </method>
    <signal name="ConnectionAdded">
      <arg name="path" type="o"/>
      <arg name="properties" type="a{sv}"/>
    </signal>
    <signal name="ConnectionRemoved">
      <arg name="path" type="o"/>
    </signal>
  </interface>
</node>
"""

CONNMAN_VPN_CONNECTION_INTROSPECTION = """
<node>
  <interface name="net.connman.vpn.Connection">
    <method name="GetProperties">
      <arg direction="out" name="properties" type="a{sv}"/>
    </method>
    <method name="SetProperty">
      <arg direction="in" name="name" type="s"/>
      <arg direction="in" name="value" type="v"/>
    </method>
    <method name="Connect"/>
    <method name="Disconnect"/>
    <signal name="PropertyChanged">
      <arg name="name" type="s"/>
      <arg name="value" type="v"/>
    </signal>
  </interface>
</node>
"""
