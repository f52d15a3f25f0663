from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
import redis.asyncio as redis
from redis.exceptions import RedisError

from steprun_api.src.dependencies import get_listener, get_run_store
from steprun_controller.src.config import get_settings
from steprun_controller.src.services.queue import get_queue_length
from steprun_controller.src.services.status_reporter import DatabaseRunSink
from steprun_controller.src.services.trigger import TriggerListener

router = APIRouter(tags=["health"])

async def check_redis() -> str:
    client = redis.from_url(get_settings().redis_url)
    try:
        await client.ping()
        return "healthy"
    except (RedisError, OSError) as e:
        return f"unhealthy: {e}"
    finally:
        await client.aclose()

def check_db(store: DatabaseRunSink) -> str:
    try:
        store.ping()
        return "healthy"
    except SQLAlchemyError as e:
        return f"unhealthy: {e}"

@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "steprun-api"}

@router.get("/health/db")
def db_health_check(store: DatabaseRunSink = Depends(get_run_store)):
    state = check_db(store)
    return {"status": "healthy" if state == "healthy" else "unhealthy", "database": state}

@router.get("/health/redis")
async def redis_health_check():
    state = await check_redis()
    return {"status": "healthy" if state == "healthy" else "unhealthy", "redis": state}

@router.get("/health/queue")
async def queue_health_check(listener: TriggerListener = Depends(get_listener)):
    if listener.dispatch != "queue":
        return {"status": "healthy", "dispatch": listener.dispatch}
    try:
        return {"status": "healthy", "dispatch": "queue", "queue_length": await get_queue_length()}
    except (RedisError, OSError) as e:
        return {"status": "unhealthy", "error": str(e)}
