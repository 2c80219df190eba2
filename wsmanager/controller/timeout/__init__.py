"""Timeout reconciliation.

- **policy**: pure timeout decision per phase
- **reconciler**: periodic ``TimeoutReconciler`` latching the ``Timeout`` condition
"""
