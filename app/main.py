import logging

from fastapi import FastAPI
from app.database import LOG_LEVEL
from app.routers import user_router, todo_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# Lambda ランタイムは root handler を先に登録するため basicConfig が効かない
logging.getLogger().setLevel(LOG_LEVEL)

app = FastAPI(title="Lambda FastAPI Example")

app.include_router(user_router.router, prefix="/users", tags=["Users"])
app.include_router(todo_router.router, prefix="/todos", tags=["Todos"])

# Root health
@app.get("/")
async def read_root():
    return {"status": "ok"}
