"""Services Layer — async workflows orchestrating collaborators around the pure core.

Invariants:
    - Workflows never let a collaborator failure escape: every exit path yields an outcome
    - Submitting / in-flight flags are released in finally

Design Decisions:
    - Impureim sandwich: pure check -> awaited collaborator call -> pure state update
"""
