# ==== OBSERVABILITY PACKAGE ==== #

"""
Observability package: loguru logging, OpenTelemetry tracing and
Prometheus metrics for the smart contract engine.
"""
