"""
cronspine - cron scheduling core for agent runtime dashboards.

Parses and validates schedule expressions, computes upcoming fire times,
drives job lifecycle against an external agent runtime, records every
triggered run and projects enabled jobs onto a weekly calendar.

- cronspine.core: models, errors, logging, settings, scheduling maths
- cronspine.runtime: ports to the external agent runtime
- cronspine.ops: typed operations (``OperationContext`` in, ``OperationResult`` out)
- cronspine.api / cronspine.cli: thin HTTP and terminal transports
"""

__version__ = "0.1.0"
