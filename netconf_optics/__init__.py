"""
NETCONF Optics Exporter

Minimal NETCONF client and optical transceiver exporter:
- SSH transport with the netconf subsystem
- base:1.1 chunked request framing
- schema-free XML to JSON-style decoding
- Prometheus gauges for transceiver channel statistics
"""

__version__ = "0.1.0"
