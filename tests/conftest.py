"""Shared fixtures for NETCONF optics tests."""

import pytest


OPTICS_REPLY = """<?xml version="1.0" encoding="UTF-8"?>
<rpc-reply message-id="101" xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <data>
    <components xmlns="http://openconfig.net/yang/platform">
      <component>
        <name>Ethernet1</name>
        <transceiver xmlns="http://openconfig.net/yang/platform/transceiver">
          <state>
            <present>PRESENT</present>
            <serial-no>SN123</serial-no>
            <vendor>ACME</vendor>
            <vendor-part>QSFP-100G-LR4</vendor-part>
            <vendor-rev>A1</vendor-rev>
          </state>
          <physical-channels>
            <channel>
              <index>0</index>
              <state>
                <index>0</index>
                <input-power>
                  <avg>-2.5</avg>
                  <instant>-2.4</instant>
                  <interval>30000000000</interval>
                  <max>-2.1</max>
                  <max-time>1700000000</max-time>
                  <min>-2.9</min>
                  <min-time>1700000001</min-time>
                </input-power>
                <laser-bias-current>
                  <instant>6.5</instant>
                </laser-bias-current>
                <output-power>
                  <instant>-1.0</instant>
                </output-power>
              </state>
            </channel>
            <channel>
              <index>1</index>
              <state>
                <index>1</index>
                <input-power>
                  <instant>-3.0</instant>
                </input-power>
              </state>
            </channel>
          </physical-channels>
        </transceiver>
      </component>
      <component>
        <name>Ethernet2</name>
        <transceiver xmlns="http://openconfig.net/yang/platform/transceiver">
          <state>
            <present>NOT_PRESENT</present>
          </state>
        </transceiver>
      </component>
    </components>
  </data>
</rpc-reply>"""


@pytest.fixture
def optics_reply() -> str:
    return OPTICS_REPLY
