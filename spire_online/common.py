import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin import initialize_app, auth
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from spire_online.config import settings
from spire_online.errors import Conflict, InvalidArgument, NotAuthenticated, RemoteFailure, SpireError

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Initialize Firebase
firebase_app = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    global firebase_app
    if settings.environment == "production":
        try:
            from firebase_admin import credentials as fb_credentials

            cred = fb_credentials.ApplicationDefault()
            options = {"projectId": settings.firebase_project_id} if settings.firebase_project_id else None
            firebase_app = initialize_app(credential=cred, options=options)
            logger.info("Firebase initialized successfully")
        except Exception:
            logger.exception("Error initializing Firebase")
            raise
    else:
        logger.info("Running in development mode - skipping Firebase initialization")

    yield

    # Shutdown
    if firebase_app:
        from firebase_admin import delete_app

        delete_app(firebase_app)
        firebase_app = None

app = FastAPI(title="Spire Online", lifespan=lifespan)
security = HTTPBearer(auto_error=False)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SpireError)
async def spire_error_handler(request: Request, exc: SpireError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    error = InvalidArgument("; ".join(
        f"{'.'.join(str(part) for part in e.get('loc', ()))}: {e.get('msg')}" for e in exc.errors()
    ))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"Constraint violation on {request.url.path}: {exc.orig}")
    error = Conflict("Constraint violation")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Storage failure on {request.url.path}")
    error = RemoteFailure("Storage failure")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


# Dependency to get current user from token
async def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)) -> dict:
    if credentials is None or not credentials.credentials:
        raise NotAuthenticated()

    token = credentials.credentials

    if settings.environment != "production":
        # Development tokens are the user id itself so several local users can be simulated
        logger.debug("Development mode - skipping token verification")
        return {
            "uid": token,
            "email": f"{token}@example.com",
            "name": token,
        }

    try:
        decoded_token = auth.verify_id_token(token)
        logger.debug(f"Successfully decoded token with UID: {decoded_token.get('uid')}")
        return decoded_token
    except Exception as e:
        logger.warning(f"Rejected Firebase ID token: {e}")
        raise NotAuthenticated("Invalid authentication token")
