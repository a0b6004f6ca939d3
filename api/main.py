"""
FastAPI main application for the Book Manager API.

Every book route requires a token. Any authenticated user may read any
book; only a book's owner may update or delete it.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Annotated, List, Optional

import structlog
from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from api.auth import SigningKey, TokenService, extract_token, token_header
from api.config import config as api_config
from api.models import (
    BSON_INT_MAX,
    BSON_INT_MIN,
    BookPayload,
    BookResponse,
    HealthResponse,
    LoginRequest,
    MessageResponse,
    SignupRequest,
    TableOfContentsPayload,
    TokenResponse,
    UpdateBookRequest,
)
from store.books import CatalogStore
from store.database import MongoDBManager
from store.errors import CatalogError, MalformedRequest, UserNotFound
from store.models import User
from store.users import CredentialStore
from utilities.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger(__name__)

# Path ids outside the BSON integer range are rejected as malformed
BookId = Annotated[int, Path(ge=BSON_INT_MIN, le=BSON_INT_MAX)]

# Process-wide collaborators, built once in the lifespan handler
db_manager: Optional[MongoDBManager] = None
token_service: Optional[TokenService] = None


def build_token_service(manager: MongoDBManager, signing_key: SigningKey) -> TokenService:
    """Wire a token service to the credential store of ``manager``."""
    return TokenService(
        signing_key=signing_key,
        credentials=CredentialStore(manager, bcrypt_rounds=config.bcrypt_rounds),
        ttl_minutes=api_config.jwt_exp_minutes,
        algorithm=api_config.jwt_algorithm,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global db_manager, token_service

    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.get_log_file_path(),
        debug=config.debug
    )
    logger.info("Starting Book Manager API")

    try:
        db_manager = MongoDBManager(
            connection_url=config.mongodb_url,
            database_name=config.mongodb_database
        )
        await db_manager.connect()
        await db_manager.create_schema()
    except Exception as e:
        logger.error("Failed to initialise database", error=str(e))
        raise

    # A new key on every start: tokens from a previous process stop verifying.
    token_service = build_token_service(db_manager, SigningKey.generate())
    logger.info("Token service ready", ttl_minutes=api_config.jwt_exp_minutes)

    yield

    logger.info("Shutting down Book Manager API")
    await db_manager.disconnect()


app = FastAPI(
    title=api_config.api_title,
    description=api_config.api_description,
    version=api_config.api_version,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=api_config.cors_origins,
    allow_credentials=api_config.cors_allow_credentials,
    allow_methods=api_config.cors_allow_methods,
    allow_headers=api_config.cors_allow_headers,
)


# Exception handlers
@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    """Report caller-input faults with their message."""
    logger.warning(
        "Request rejected",
        path=request.url.path,
        kind=exc.kind.value,
        error=exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=MessageResponse(message=exc.message).model_dump(exclude_none=True)
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Unparseable bodies are client errors."""
    logger.warning("Malformed request", path=request.url.path, errors=exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=MessageResponse(message=MalformedRequest.message).model_dump(exclude_none=True)
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Log internal faults in full and answer with an opaque message."""
    logger.error("Unhandled exception", path=request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=MessageResponse(
            message="internal server error",
            detail=str(exc) if api_config.debug else None
        ).model_dump(exclude_none=True)
    )


# Dependencies
def get_token_service() -> TokenService:
    if token_service is None:
        raise RuntimeError("Token service not available")
    return token_service


def get_credential_store() -> CredentialStore:
    return get_token_service().credentials


def get_catalog_store(credentials: CredentialStore = Depends(get_credential_store)) -> CatalogStore:
    return CatalogStore(credentials.db_manager, credentials)


def get_current_username(
    authorization: Optional[str] = Depends(token_header),
    tokens: TokenService = Depends(get_token_service),
) -> str:
    """Verify the presented token and return its username."""
    return tokens.identity_from_token(extract_token(authorization))


async def get_current_user(
    username: str = Depends(get_current_username),
    credentials: CredentialStore = Depends(get_credential_store),
) -> User:
    """Resolve the token's username to an account."""
    return await credentials.find_by_username(username)


# Health check endpoint (no authentication required)
@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check():
    """Health check endpoint."""
    db_status = "unavailable"
    if db_manager:
        health_info = await db_manager.health_check()
        db_status = health_info.get("status", "unknown")

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=api_config.api_version,
        database_status=db_status
    )


# Account endpoints
@app.post("/signup", response_model=MessageResponse, response_model_exclude_none=True, tags=["Accounts"])
async def signup(
    payload: SignupRequest,
    credentials: CredentialStore = Depends(get_credential_store)
):
    """Create an account. Username, email and phone number must be unused."""
    await credentials.create_user(payload.to_user())
    return MessageResponse(message="user has been created")


@app.post("/login", response_model=TokenResponse, tags=["Accounts"])
async def login(
    payload: LoginRequest,
    tokens: TokenService = Depends(get_token_service)
):
    """Exchange a username and password for a bearer token."""
    try:
        token = await tokens.login(payload.username, payload.password)
    except UserNotFound:
        raise UserNotFound("no such username exists")
    return TokenResponse(access_token=token)


# Books endpoints
@app.post("/books", response_model=MessageResponse, response_model_exclude_none=True, tags=["Books"])
async def create_book(
    request: Request,
    account: User = Depends(get_current_user),
    catalog: CatalogStore = Depends(get_catalog_store)
):
    """
    Create a book owned by the caller.

    The body is read twice: once for ``table_of_contents`` and once for the
    book's own fields. Any owner given in the body is ignored.
    """
    try:
        body = json.loads(await request.body())
        table = TableOfContentsPayload.model_validate(body)
        fields = BookPayload.model_validate(body)
    except (ValueError, ValidationError) as e:
        logger.warning("Could not parse book body", error=str(e))
        raise MalformedRequest()

    await catalog.create_book(fields.to_book(owner_id=account.id), table.table_of_contents)
    return MessageResponse(message="book was created successfully")


@app.get("/books", response_model=List[BookResponse], tags=["Books"])
async def get_all_books(
    username: str = Depends(get_current_username),
    catalog: CatalogStore = Depends(get_catalog_store)
):
    """Get every book in the catalog."""
    books = await catalog.get_all_books()
    return [BookResponse.from_book(book) for book in books]


@app.get("/books/{book_id}", response_model=BookResponse, tags=["Books"])
async def get_book(
    book_id: BookId,
    username: str = Depends(get_current_username),
    catalog: CatalogStore = Depends(get_catalog_store)
):
    """Get a single book by id."""
    book = await catalog.get_book(book_id)
    return BookResponse.from_book(book)


@app.put("/books/{book_id}", response_model=MessageResponse, response_model_exclude_none=True, tags=["Books"])
async def update_book(
    book_id: BookId,
    payload: UpdateBookRequest,
    username: str = Depends(get_current_username),
    catalog: CatalogStore = Depends(get_catalog_store)
):
    """Overwrite a book's name and category. Owner only."""
    await catalog.update_owned_book(username, book_id, payload.name, payload.category)
    return MessageResponse(message="book has been updated")


@app.delete("/books/{book_id}", response_model=MessageResponse, response_model_exclude_none=True, tags=["Books"])
async def delete_book(
    book_id: BookId,
    username: str = Depends(get_current_username),
    catalog: CatalogStore = Depends(get_catalog_store)
):
    """Delete a book and its table of contents. Owner only."""
    await catalog.delete_owned_book(username, book_id)
    return MessageResponse(message="book has been deleted")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=api_config.debug,
        log_level=api_config.log_level.lower()
    )
