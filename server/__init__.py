"""UAT admin core package.

Modules:
- config: INI + environment parsing and config object
- database: SQLModel engine and sessions
- repository: project, checklist and response queries
- app: FastAPI app, edge auth middleware and routing
"""
