"""
Approval workflows.

Three fixed state machines share one transition contract:
load subject -> status precondition -> authorization -> one unit of work
(conditional status update, dependent records, one notification, commit).

Modules:
- state_machine: transition tables and refusal classification
- associate_applications: associate application review
- team_applications: team-formation applications reviewed by a guide
- evaluation_requests: physical evaluation requests addressed to a guide
"""

from .state_machine import APPLICATION, EVALUATION, TEAM_FORMATION, StateMachine, Transition

__all__ = ["APPLICATION", "EVALUATION", "TEAM_FORMATION", "StateMachine", "Transition"]
