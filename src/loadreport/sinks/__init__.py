from loadreport.sinks.base import Sink
from loadreport.sinks.console import ConsoleSink
from loadreport.sinks.prometheus import PrometheusPushSink, PushgatewayConfig

__all__ = ["Sink", "ConsoleSink", "PrometheusPushSink", "PushgatewayConfig"]
