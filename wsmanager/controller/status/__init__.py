"""Status reconciliation.

- **failure**: failure reason extraction from pod / container status
- **phase**: ordered phase decision rules
- **reconciler**: ``update_workspace_status`` and the ``StatusReconciler``
"""
