# reselec/domains/__init__.py

"""
Business domains. Each sub-package holds the models, schemas, CRUD and routers of one area:

- `usr`: users, sections, roles and permissions
- `crm`: clients
- `fms`: equipment
- `itv`: interventions and their status workflow
- `rpt`: analytics dashboard
"""
