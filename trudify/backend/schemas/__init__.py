"""
Pydantic schemas.

Records sent to the frontend subclass CamelModel (camelCase aliases, built
from ORM rows). Request bodies live next to the records of their domain:

- base.py          ApiResponse, ErrorResponse and pagination envelopes
- task.py          TaskCreate, TaskResponse
- application.py   ApplicationResponse
- lifecycle.py     withdraw and confirm-completion bodies, transition results
- notification.py  inbox records
- professional.py  public professional profile
- telegram.py      connection token and webhook identity
"""
