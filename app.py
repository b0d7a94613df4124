import logging
import os
from datetime import datetime, timezone

from dotenv import load_dotenv
load_dotenv()
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import NotFoundError, ValidationError
from models import Todo, TodoCreate, TodoUpdate, iso_timestamp
from store import TodoStore

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "ALLOWED_ORIGINS", "http://localhost:3000,https://your-app-name.vercel.app"
    ).split(",")
    if origin.strip()
]
CORS_REJECTED = "The CORS policy for this site does not allow access from the specified Origin."

logger = logging.getLogger(__name__)

app = FastAPI(title="TaskMaster API")
app.state.store = TodoStore()


@app.middleware("http")
async def reject_unknown_origins(request: Request, call_next):
    # Requests without an Origin header (curl, native clients) are allowed.
    origin = request.headers.get("origin")
    if origin is not None and origin not in ALLOWED_ORIGINS:
        logger.warning("Rejected request from origin %s", origin)
        return JSONResponse(status_code=status.HTTP_403_FORBIDDEN, content={"error": CORS_REJECTED})
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
def validation_error(request: Request, exc: ValidationError):
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
def request_validation_error(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "path"))
    message = first.get("msg", "Invalid request")
    if field:
        message = f"{field}: {message}"
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


@app.exception_handler(NotFoundError)
def not_found_error(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"error": exc.message})


def get_store(request: Request) -> TodoStore:
    return request.app.state.store


@app.get("/api")
def info():
    return {
        "message": "Todo API is running!",
        "endpoints": {
            "getTodos": "GET /api/todos",
            "addTodo": "POST /api/todos",
            "updateTodo": "PUT /api/todos/:id",
            "deleteTodo": "DELETE /api/todos/:id",
            "health": "GET /api/health",
        },
    }


@app.get("/api/health")
def health():
    return {"status": "ok", "timestamp": iso_timestamp(datetime.now(timezone.utc))}


@app.get("/api/todos", response_model=List[Todo])
def list_todos(store: Annotated[TodoStore, Depends(get_store)]):
    return store.list()


@app.post("/api/todos", response_model=Todo, status_code=status.HTTP_201_CREATED)
def create_todo(store: Annotated[TodoStore, Depends(get_store)], req: Optional[TodoCreate] = None):
    # A missing body fails the same way as an empty one.
    req = req or TodoCreate()
    return store.create(req.text, req.priority)


@app.put("/api/todos/{todo_id}", response_model=Todo)
def update_todo(todo_id: int, req: TodoUpdate, store: Annotated[TodoStore, Depends(get_store)]):
    return store.update(todo_id, req.changes())


@app.delete("/api/todos/{todo_id}")
def delete_todo(todo_id: int, store: Annotated[TodoStore, Depends(get_store)]):
    store.delete(todo_id)
    return {"success": True, "message": "Todo deleted"}
