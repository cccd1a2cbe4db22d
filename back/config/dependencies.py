#####################################################
#                                                   #
#                의존성 주입 함수 정의                 #
#                                                   #
#####################################################

from fastapi import Request
from config.clients import SolapiClient
from utils.date_util import Clock

##### 클라이언트 의존성 주입 함수 정의 #####
# app.py lifespan 에서 초기화된 클라이언트를 반환
# Depends를 위한 헬퍼 함수

# sms
def get_sms_client(request: Request) -> SolapiClient:
    return request.app.state.client_container.sms_client

def get_sms_retry_policy(request: Request) -> tuple[int, float]:
    container = request.app.state.client_container
    return container.sms_max_attempts, container.sms_backoff_seconds

# clock: 요청 미들웨어가 만든 요청 단위 시계
def get_clock(request: Request) -> Clock:
    clock = getattr(request.state, "clock", None)
    if clock is None:
        clock = Clock()
        clock.init_server_clock()
        request.state.clock = clock
    return clock
