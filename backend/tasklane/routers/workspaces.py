"""
Workspace and category routes.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session
from typing import Optional

from tasklane.auth import CurrentUser, get_current_user
from tasklane.database import get_session
from tasklane.models import (
    CategoryCreate, CategoryRead, CategoryUpdate,
    WorkspaceCreate, WorkspaceRead, WorkspaceUpdate,
)
from tasklane.services import workspace_service

router = APIRouter(prefix="/api", tags=["workspaces"])


# ============ Workspaces ============

@router.get("/workspaces", response_model=list[WorkspaceRead])
def list_workspaces(
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return workspace_service.get_workspaces(session, user)


@router.post("/workspaces", response_model=WorkspaceRead)
def create_workspace(
    data: WorkspaceCreate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return workspace_service.create_workspace(session, user, data)


@router.patch("/workspaces/{workspace_id}", response_model=WorkspaceRead)
def update_workspace(
    workspace_id: int,
    updates: WorkspaceUpdate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    workspace = workspace_service.update_workspace(session, user, workspace_id, updates)
    if not workspace:
        raise HTTPException(status_code=404, detail="Workspace not found")
    return workspace


@router.delete("/workspaces/{workspace_id}")
def delete_workspace(
    workspace_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    """Delete a workspace and everything in it."""
    if not workspace_service.delete_workspace(session, user, workspace_id):
        raise HTTPException(status_code=404, detail="Workspace not found")
    return {"ok": True}


# ============ Categories ============

@router.get("/categories", response_model=list[CategoryRead])
def list_categories(
    workspace_id: Optional[int] = None,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return workspace_service.get_categories(session, user, workspace_id)


@router.post("/categories", response_model=CategoryRead)
def create_category(
    data: CategoryCreate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    return workspace_service.create_category(session, user, data)


@router.patch("/categories/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    updates: CategoryUpdate,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    category = workspace_service.update_category(session, user, category_id, updates)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.delete("/categories/{category_id}")
def delete_category(
    category_id: int,
    session: Session = Depends(get_session),
    user: Optional[CurrentUser] = Depends(get_current_user),
):
    if not workspace_service.delete_category(session, user, category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    return {"ok": True}
