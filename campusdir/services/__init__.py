"""Campus directory microservices.

- directory_service: profile search and owner/admin editing
- statistics_service: dashboard aggregates over a snapshot of all profiles

Both services share the StudentRecord model, the students repository and
hash_pii() for identifiers written to logs.
"""
