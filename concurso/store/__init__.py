"""Application state: reducer, wire mapping and the store controller."""

from concurso.store.controller import OperationResult, StaleSessionError, StoreController
from concurso.store.reducer import INITIAL_STATE, AppState, reduce

__all__ = [
    "AppState",
    "INITIAL_STATE",
    "OperationResult",
    "StaleSessionError",
    "StoreController",
    "reduce",
]
