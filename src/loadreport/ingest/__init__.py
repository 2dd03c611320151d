from loadreport.ingest.service import read_events

__all__ = ["read_events"]
