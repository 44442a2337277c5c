# reselec/domains/itv/__init__.py

"""
'itv' domain: maintenance interventions on client equipment.

- `workflow.py`: the status state machine, shared with the client SDK (no I/O).
- `models.py`: interventions, status history and the workflow phase tables.
- `crud.py`: listing filters, status counts, the transition operation, the timeline
  and the diagnostic, planification and quality control records.
- `routers.py`: /interventions endpoints.
- `tasks.py`: arq task flagging overdue interventions.
"""

__all__ = []
