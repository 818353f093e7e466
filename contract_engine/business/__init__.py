# ==== BUSINESS LOGIC PACKAGE ==== #

"""
Business logic package for contract rules and lifecycle policies.

This package contains the closed vocabularies used by the engine (rule types,
actions, lifecycle states, escalation and notification codes) and the default
rule catalog and trade-type configurations shipped as replaceable data.
"""
