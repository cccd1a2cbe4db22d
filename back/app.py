#####################################################
#                                                   #
#                앱 상태 정의 및 관리                  #
#                                                   #
#####################################################

from fastapi import FastAPI, Request
from prometheus_fastapi_instrumentator import Instrumentator
from logs.logging_util import LoggerSingleton
from contextlib import asynccontextmanager
from asyncio import to_thread
from config.clients import initialize_clients, close_clients
from config.exception import register_exception_handlers
from database import init_db
from auth.router import router as auth_router
from counseling.router import router as counseling_router
from counseling.manager_router import router as counseling_manager_router
from utils.date_util import Clock
import logging

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        r"""
    ###     ####     ###    #####    ######  ##   ##  ##  ##
   ## ##   ##  ##   ## ##   ##  ##   ##      ### ###   ####
  ##   ##  ##      ##   ##  ##  ##   ####    ## # ##    ##
  #######  ##      #######  ##  ##   ##      ##   ##    ##
  ##   ##  ##  ##  ##   ##  ##  ##   ##      ##   ##    ##
  ##   ##   ####   ##   ##  #####    ######  ##   ##    ##
                        🗓️ COUNSELING ENGINE START 🗓️
"""
    )

    await to_thread(init_db)
    logger.info(
        f"\n{'=' * 80}\n"
        f"| {' ' * 29} 🛢️ DATABASE INITIATED 🛢️ {' ' * 29} |\n"
        f"{'=' * 80}\n"
    )

    # 앱 상태에 클라이언트 컨테이너를 저장
    client_container = initialize_clients()
    app.state.client_container = client_container

    yield

    # 종료시 클린업 작업
    await close_clients(client_container)
    logger.info("🛑 ENGINE SHUTDOWN 🛑")

# FastAPI 앱 인스턴스 생성
app = FastAPI(lifespan=lifespan)

# Prometheus FastAPI 미들웨어 설정
Instrumentator().instrument(app).expose(app)

# 전역 예외 핸들러
register_exception_handlers(app)


# 요청마다 새 시계를 만든다 (요청 간 시계 상태 공유 없음)
@app.middleware("http")
async def attach_request_clock(request: Request, call_next):
    clock = Clock()
    clock.init_server_clock()
    request.state.clock = clock
    return await call_next(request)


# 라우터 등록
routers = [auth_router, counseling_router, counseling_manager_router]

for router in routers:
    app.include_router(router)

# 로거 설정
logger = LoggerSingleton.get_logger(logger_name="app", level=logging.INFO)
