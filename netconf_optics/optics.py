"""Optical transceiver data from OpenConfig platform replies."""

import logging
from typing import Any, Dict, List, Optional

from .decoder import Value

logger = logging.getLogger(__name__)

PRESENT = "PRESENT"
NOT_PRESENT = "NOT_PRESENT"

# Copied from transceiver/state for present components
INVENTORY_FIELDS = ("serial-no", "vendor", "vendor-part", "vendor-rev")

OPTICS_REQUEST = """<?xml version="1.0" encoding="UTF-8"?>
<rpc message-id="101"
     xmlns="urn:ietf:params:xml:ns:netconf:base:1.0">
  <get>
    <filter type="subtree">
      <components xmlns="http://openconfig.net/yang/platform">
        <component>
          <transceiver xmlns="http://openconfig.net/yang/platform/transceiver"/>
        </component>
      </components>
    </filter>
  </get>
</rpc>
"""


def lookup(value: Value, *path: str) -> Optional[Value]:
    """Follow dict keys down a decoded value. Returns None if any step is missing."""
    for key in path:
        if not isinstance(value, dict) or key not in value:
            return None
        value = value[key]
    return value


def as_list(value: Value) -> List[Value]:
    """A repeated element decodes to a list, a lone one does not."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _channels(transceiver: Value) -> List[Dict[str, Any]]:
    channels = []
    for channel in as_list(lookup(transceiver, "physical-channels", "channel")):
        state = lookup(channel, "state")
        channels.append(dict(state) if isinstance(state, dict) else {})
    return channels


def extract_components(reply: Value) -> List[Dict[str, Any]]:
    """Summarize every component in a decoded ``<get>`` reply.

    Args:
        reply: Decoded rpc-reply for ``OPTICS_REQUEST``.

    Returns:
        One dict per component with ``name`` and ``present-state``; present
        transceivers also carry their inventory fields and, when reported,
        a ``channel`` list of per-lane state.
    """
    components = []

    for component in as_list(lookup(reply, "rpc-reply", "data", "components", "component")):
        if not isinstance(component, dict):
            logger.debug(f"Skipping component without structure: {component!r}")
            continue

        summary: Dict[str, Any] = {"name": component.get("name")}
        transceiver = component.get("transceiver")

        if lookup(transceiver, "state", "present") == PRESENT:
            summary["present-state"] = PRESENT
            for name in INVENTORY_FIELDS:
                field_value = lookup(transceiver, "state", name)
                if field_value is not None:
                    summary[name] = field_value

            channels = _channels(transceiver)
            if channels:
                summary["channel"] = channels
        else:
            summary["present-state"] = NOT_PRESENT

        components.append(summary)

    logger.debug(f"Extracted {len(components)} component(s)")
    return components
