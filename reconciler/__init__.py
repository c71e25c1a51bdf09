from reconciler.main import Reconciler, ReconcileResult, INTERRUPTED_MESSAGE

__all__ = ['Reconciler', 'ReconcileResult', 'INTERRUPTED_MESSAGE']
