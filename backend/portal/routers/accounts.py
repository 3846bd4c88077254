from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from portal.database import get_db
from portal.dependencies import require_candidate
from portal.models.user import User
from portal.schemas.account import LoginRequest, LoginResponse, RegisterRequest, UserResponse
from portal.services.session_service import session_service

router = APIRouter(prefix="/accounts", tags=["accounts"])


def _user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        locale=user.locale,
        application_id=user.application.id if user.application else None,
    )


@router.post("/register", response_model=UserResponse, status_code=201)
async def register(req: RegisterRequest, db: Session = Depends(get_db)):
    if len(req.password) < 8:
        raise HTTPException(status_code=400, detail="Password must be at least 8 characters")
    if not req.first_name.strip() or not req.last_name.strip():
        raise HTTPException(status_code=400, detail="First and last name are required")

    user = session_service.register(db, req.email, req.password, req.first_name, req.last_name, req.locale)
    if user is None:
        raise HTTPException(status_code=409, detail="Email already registered")
    return _user_to_response(user)


@router.post("/login", response_model=LoginResponse)
async def login(req: LoginRequest, db: Session = Depends(get_db)):
    result = session_service.login(db, req.email, req.password)
    if result is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return LoginResponse(**result)


@router.post("/logout")
async def logout(authorization: str = Header(...), _user: User = Depends(require_candidate)):
    session_service.logout(authorization[7:])
    return {"message": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(require_candidate)):
    return _user_to_response(user)
