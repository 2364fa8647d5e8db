from .api import ApiError, AssetFlowClient
from .store import Action, AppState, Store, load_initial_data, reduce

__all__ = [
    "Action",
    "ApiError",
    "AppState",
    "AssetFlowClient",
    "Store",
    "load_initial_data",
    "reduce",
]
