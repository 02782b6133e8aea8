"""
Telemetry Ingest: приём отчётов GPS-устройств.
"""
