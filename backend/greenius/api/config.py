"""
Config API endpoints - read, patch and reset the global chat configuration.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import ValidationError

from ..core import ChatStore
from ..models import ChatConfig
from ..storage import StatePersistence
from .deps import get_persistence, get_store, save_state

router = APIRouter(prefix="/config", tags=["config"])

_FIELDS_BY_ALIAS = {
    (info.alias or name): name for name, info in ChatConfig.model_fields.items()
}


def _dump(config: ChatConfig) -> Dict[str, Any]:
    return config.model_dump(by_alias=True, mode="json")


@router.get("")
async def get_config(store: ChatStore = Depends(get_store)):
    return _dump(store.get_config())


@router.patch("")
async def update_config(
    patch: Dict[str, Any],
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    """
    Update config fields by their snapshot names. Model parameters are
    clamped into range rather than rejected.
    """
    unknown = [key for key in patch if key not in _FIELDS_BY_ALIAS]
    if unknown:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Unknown config fields: {', '.join(unknown)}",
        )

    def apply(config: ChatConfig) -> None:
        for key, value in patch.items():
            if key == "modelConfig" and isinstance(value, dict):
                for param, param_value in value.items():
                    if param in type(config.model_settings).model_fields:
                        setattr(config.model_settings, param, param_value)
            else:
                setattr(config, _FIELDS_BY_ALIAS[key], value)

    try:
        config = store.update_config(apply)
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.errors(include_url=False, include_context=False),
        )

    await save_state(store, persistence)
    return _dump(config)


@router.delete("")
async def reset_config(
    store: ChatStore = Depends(get_store),
    persistence: StatePersistence = Depends(get_persistence),
):
    store.reset_config()
    await save_state(store, persistence)
    return _dump(store.get_config())
