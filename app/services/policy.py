from dataclasses import dataclass

from app.core.config import Settings

DIRECT_TYPE = "dw"
REQUEST_TYPE = "pw"
MAKEUP_TYPES = (DIRECT_TYPE, REQUEST_TYPE)


@dataclass(frozen=True)
class MakeupPolicy:
    # pw resolve por pedido/aprovação, o controle de vagas fica com o professor
    pw_capacity_exempt: bool = True
    # limita a busca até a próxima ocorrência da sessão perdida
    bound_by_next_occurrence: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "MakeupPolicy":
        return cls(
            pw_capacity_exempt=settings.PW_CAPACITY_EXEMPT,
            bound_by_next_occurrence=settings.BOUND_BY_NEXT_OCCURRENCE,
        )

    def is_capacity_exempt(self, session_type: str) -> bool:
        return self.pw_capacity_exempt and session_type == REQUEST_TYPE
