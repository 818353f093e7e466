# ==== SERVICES PACKAGE ==== #

"""
Services package for contract business logic.

This package contains the rule engine and decision classifier, the lifecycle
state machine, override and escalation handling, reminder scheduling, the
trade cycle aggregator, policy loading and the workflow service that ties
them to a repository.
"""
