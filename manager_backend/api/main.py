import logging
from datetime import datetime
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict

from manager_store.config import Settings, get_settings
from manager_store.credentials import CredentialStore
from manager_store.errors import AuthError, ManagerError
from manager_store.repository import BookmarkRepository, NoteRepository, TitleResolver
from manager_store.sessions import SessionClaims, SessionIssuer
from manager_store.titles import BookmarkTitleResolver
from manager_store.validation import (BookmarkPayload, LoginPayload, NotePayload,
                                      RegisterPayload, format_errors)

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# Pydantic models for serialization

class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str

class Token(BaseModel):
    token: str
    token_type: str = "bearer"

class NoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    content: str
    tags: List[str]
    favorite: bool
    created_at: datetime
    updated_at: datetime

class BookmarkOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    url: str
    title: str
    description: str
    tags: List[str]
    favorite: bool
    created_at: datetime
    updated_at: datetime


# Dependencies: every store lives on app.state, one set per application

async def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credentials

async def get_session_issuer(request: Request) -> SessionIssuer:
    return request.app.state.sessions

async def get_note_repository(request: Request) -> NoteRepository:
    return request.app.state.notes

async def get_bookmark_repository(request: Request) -> BookmarkRepository:
    return request.app.state.bookmarks

async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    issuer: SessionIssuer = Depends(get_session_issuer),
) -> SessionClaims:
    """Verifies the bearer token; raises AuthError before any route logic runs."""
    return issuer.verify(credentials.credentials if credentials else None)


router = APIRouter()

# Root Health Check
@router.get("/", summary="Health Check", tags=["General"])
async def health_check():
    """Simple health check endpoint."""
    return {"message": "Personal Notes and Bookmark Manager API"}


#####################
# AUTH ENDPOINTS
#####################

# PUBLIC_INTERFACE
@router.post("/api/register", response_model=UserOut, status_code=201,
             summary="Register a new user", tags=["Authentication"])
async def register(payload: RegisterPayload, store: CredentialStore = Depends(get_credential_store)):
    """
    Register a new user.
    Returns the new user's id and username, never the password.
    """
    return await store.register(payload.username, payload.password)

# PUBLIC_INTERFACE
@router.post("/api/login", response_model=Token, summary="Login and get a session token",
             tags=["Authentication"])
async def login(
    payload: LoginPayload,
    store: CredentialStore = Depends(get_credential_store),
    issuer: SessionIssuer = Depends(get_session_issuer),
):
    """
    User login.
    Returns a bearer token valid for two hours.
    """
    user = await store.login(payload.username, payload.password)
    logger.info("User %s logged in", user.id)
    return Token(token=issuer.mint(user))


#####################
# NOTES ENDPOINTS
#####################

# PUBLIC_INTERFACE
@router.post("/api/notes", response_model=NoteOut, status_code=201,
             summary="Create a new note", tags=["Notes"])
async def create_note(
    payload: NotePayload,
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    """Create a new note for the authenticated user."""
    return await notes.create(claims.user_id, payload)

# PUBLIC_INTERFACE
@router.get("/api/notes", response_model=List[NoteOut], summary="List user notes", tags=["Notes"])
async def list_notes(
    q: Optional[str] = Query(None, description="Search term for note content"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any may match"),
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Get the authenticated user's notes.
    Supports filtering by search term and by tags.
    """
    return notes.list(claims.user_id, text=q, tags=tags)

# PUBLIC_INTERFACE
@router.get("/api/notes/{note_id}", response_model=NoteOut, summary="Get a single note", tags=["Notes"])
async def get_note(
    note_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    return notes.get(claims.user_id, note_id)

# PUBLIC_INTERFACE
@router.put("/api/notes/{note_id}", response_model=NoteOut, summary="Replace a note", tags=["Notes"])
async def update_note(
    note_id: int,
    payload: NotePayload,
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    """
    Replace a note's content and tags. Omitted tags are cleared.
    """
    return await notes.update(claims.user_id, note_id, payload)

# PUBLIC_INTERFACE
@router.delete("/api/notes/{note_id}", status_code=204, summary="Delete a note", tags=["Notes"])
async def delete_note(
    note_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    notes.delete(claims.user_id, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# PUBLIC_INTERFACE
@router.patch("/api/notes/{note_id}/favorite", response_model=NoteOut,
              summary="Toggle a note's favorite flag", tags=["Notes"])
async def toggle_note_favorite(
    note_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    notes: NoteRepository = Depends(get_note_repository),
):
    return notes.toggle_favorite(claims.user_id, note_id)


#####################
# BOOKMARK ENDPOINTS
#####################

# PUBLIC_INTERFACE
@router.post("/api/bookmarks", response_model=BookmarkOut, status_code=201,
             summary="Create a new bookmark", tags=["Bookmarks"])
async def create_bookmark(
    payload: BookmarkPayload,
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    """
    Create a bookmark. Without a title, the page title is fetched;
    if that fails the URL is used.
    """
    return await bookmarks.create(claims.user_id, payload)

# PUBLIC_INTERFACE
@router.get("/api/bookmarks", response_model=List[BookmarkOut], summary="List user bookmarks",
            tags=["Bookmarks"])
async def list_bookmarks(
    q: Optional[str] = Query(None, description="Search term for title or description"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any may match"),
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    return bookmarks.list(claims.user_id, text=q, tags=tags)

# PUBLIC_INTERFACE
@router.get("/api/bookmarks/{bookmark_id}", response_model=BookmarkOut,
            summary="Get a single bookmark", tags=["Bookmarks"])
async def get_bookmark(
    bookmark_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    return bookmarks.get(claims.user_id, bookmark_id)

# PUBLIC_INTERFACE
@router.put("/api/bookmarks/{bookmark_id}", response_model=BookmarkOut,
            summary="Replace a bookmark", tags=["Bookmarks"])
async def update_bookmark(
    bookmark_id: int,
    payload: BookmarkPayload,
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    return await bookmarks.update(claims.user_id, bookmark_id, payload)

# PUBLIC_INTERFACE
@router.delete("/api/bookmarks/{bookmark_id}", status_code=204, summary="Delete a bookmark",
               tags=["Bookmarks"])
async def delete_bookmark(
    bookmark_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    bookmarks.delete(claims.user_id, bookmark_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# PUBLIC_INTERFACE
@router.patch("/api/bookmarks/{bookmark_id}/favorite", response_model=BookmarkOut,
              summary="Toggle a bookmark's favorite flag", tags=["Bookmarks"])
async def toggle_bookmark_favorite(
    bookmark_id: int,
    claims: SessionClaims = Depends(get_current_claims),
    bookmarks: BookmarkRepository = Depends(get_bookmark_repository),
):
    return bookmarks.toggle_favorite(claims.user_id, bookmark_id)


# Error handlers

async def manager_error_handler(request: Request, exc: ManagerError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)

async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": format_errors(exc.errors())})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None,
               title_resolver: Optional[TitleResolver] = None) -> FastAPI:
    """
    Build the API with its own, empty set of stores.
    Settings come from the environment unless given explicitly.
    """
    settings = settings or get_settings()
    app = FastAPI(
        title="Personal Notes and Bookmarks API",
        description="Token-gated API for managing personal notes and bookmarks.",
        version="1.0.0",
        openapi_tags=[
            {"name": "Authentication", "description": "User registration and login"},
            {"name": "Notes", "description": "Create, update, view, delete, search notes"},
            {"name": "Bookmarks", "description": "Create, update, view, delete, search bookmarks"},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.credentials = CredentialStore(bcrypt_rounds=settings.bcrypt_rounds)
    app.state.sessions = SessionIssuer(settings.secret_key)
    app.state.notes = NoteRepository()
    app.state.bookmarks = BookmarkRepository(
        title_resolver=title_resolver or BookmarkTitleResolver(timeout=settings.title_fetch_timeout)
    )
    app.add_exception_handler(ManagerError, manager_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.include_router(router)
    return app


def run():
    """Console entry point: serve the API with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
