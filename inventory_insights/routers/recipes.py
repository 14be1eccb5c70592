from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError

from inventory_insights.core.units import UnitMismatchError
from inventory_insights.dependencies import get_session_factory
from inventory_insights.schemas.recipe import RecipeCreate, RecipeRead
from inventory_insights.services.recipe_service import save_recipe

router = APIRouter(prefix="/recipes", tags=["Recipes"])


@router.post("", response_model=RecipeRead, status_code=201)
def create_recipe(payload: RecipeCreate, session_factory=Depends(get_session_factory)):
    try:
        return save_recipe(
            payload.restaurant_id,
            payload.branch_id,
            payload.menu_item_id,
            payload.lines,
            session_factory=session_factory,
        )
    except UnitMismatchError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=500, detail="Could not save recipe.") from exc


__all__ = ["router"]
