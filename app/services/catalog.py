"""Treatments offered by the studio, as shown on the request form."""

from __future__ import annotations

from typing import List

from app.schemas.reservation import ServiceOption, ServiceType

BROW_GROUP = "brow"
OTHER_GROUP = "other"

_SERVICE_OPTIONS: List[ServiceOption] = [
    ServiceOption(
        id=ServiceType.natural,
        name="자연눈썹",
        group=BROW_GROUP,
        description="키뮤원장과 상담 후 자연눈썹 디자인으로 시술 진행해드려요!",
    ),
    ServiceOption(
        id=ServiceType.combo,
        name="콤보눈썹",
        group=BROW_GROUP,
        description="키뮤원장과 상담 후 콤보눈썹 디자인으로 시술 진행해드려요!",
    ),
    ServiceOption(
        id=ServiceType.shadow,
        name="섀도우눈썹",
        group=BROW_GROUP,
        description="키뮤원장과 상담 후 섀도우눈썹 디자인으로 시술 진행해드려요!",
    ),
    ServiceOption(
        id=ServiceType.recommend,
        name="키뮤원장 추천시술",
        group=BROW_GROUP,
        description="키뮤원장과 상담 후 맞춤시술 진행해드려요!",
    ),
    ServiceOption(
        id=ServiceType.retouch,
        name="리터치",
        group=BROW_GROUP,
        description="눈썹문신 시술 후 n회 무료 리터치",
    ),
    ServiceOption(
        id=ServiceType.brownline,
        name="브라운아이라인",
        group=OTHER_GROUP,
        description="아이라인을 브라운 이쁘게",
    ),
    ServiceOption(
        id=ServiceType.removal,
        name="잔흔제거",
        group=OTHER_GROUP,
        description="키뮤디자인을 완벽하게 하기 위한 잔흔 시술!",
    ),
]


def list_services() -> List[ServiceOption]:
    return list(_SERVICE_OPTIONS)
