"""Fixed domain constants for the reposition workflow.

Areas, statuses and transitions are not configurable at runtime.  Values
are stored verbatim in String columns, so every enum subclasses ``str``.
"""

import enum


class Area(str, enum.Enum):
    PATRONAJE = "patronaje"
    CORTE = "corte"
    BORDADO = "bordado"
    ENSAMBLE = "ensamble"
    PLANCHA = "plancha"
    CALIDAD = "calidad"
    OPERACIONES = "operaciones"
    ADMIN = "admin"
    ENVIOS = "envios"
    ALMACEN = "almacen"
    DISENO = "diseño"


class TrackingStage(str, enum.Enum):
    """Production pipeline shown by the tracking view, in order.

    A strict subset of ``Area``; office areas (admin, envios, …) never
    appear as stages.
    """
    PATRONAJE = "patronaje"
    CORTE = "corte"
    BORDADO = "bordado"
    ENSAMBLE = "ensamble"
    PLANCHA = "plancha"
    CALIDAD = "calidad"

    @classmethod
    def ordered(cls) -> list["TrackingStage"]:
        return list(cls)

    @classmethod
    def index_of(cls, area: str | None) -> int:
        """Position of ``area`` in the pipeline, or -1 if it is not a stage."""
        for index, stage in enumerate(cls):
            if stage.value == area:
                return index
        return -1


class RepositionType(str, enum.Enum):
    REPOSICION = "repocision"
    REPROCESO = "reproceso"


class RepositionStatus(str, enum.Enum):
    PENDIENTE = "pendiente"
    APROBADO = "aprobado"
    RECHAZADO = "rechazado"
    EN_PROCESO = "en_proceso"
    COMPLETADO = "completado"
    ELIMINADO = "eliminado"

    @property
    def is_terminal(self) -> bool:
        return self in (RepositionStatus.COMPLETADO, RepositionStatus.ELIMINADO)


class TransferStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Urgency(str, enum.Enum):
    URGENTE = "urgente"
    INTERMEDIO = "intermedio"
    POCO_URGENTE = "poco_urgente"


class MaterialStatus(str, enum.Enum):
    DISPONIBLE = "disponible"
    PARCIAL = "parcial"
    FALTANTE = "faltante"


class HistoryAction(str, enum.Enum):
    CREATED = "created"
    APPROVED = "approved"
    REJECTED = "rejected"
    TRANSFER_REQUESTED = "transfer_requested"
    TRANSFER_ACCEPTED = "transfer_accepted"
    TRANSFER_REJECTED = "transfer_rejected"
    TIMER_STOPPED = "timer_stopped"
    PAUSED = "paused"
    RESUMED = "resumed"
    COMPLETED = "completed"
    DELETED = "deleted"
    COMPLETION_REQUESTED = "completion_requested"
    MATERIAL_STATUS_UPDATED = "material_status_updated"


# ── Role groups ─────────────────────────────────────────────

APPROVER_AREAS = frozenset({Area.OPERACIONES, Area.ADMIN, Area.ENVIOS})
CLOSER_AREAS = frozenset({Area.ADMIN, Area.ENVIOS})
CREATION_WATCHERS = (Area.ADMIN, Area.OPERACIONES, Area.ENVIOS)
COMPLETION_WATCHERS = (Area.ADMIN, Area.ENVIOS, Area.OPERACIONES)
PAUSE_WATCHERS = (Area.ADMIN, Area.OPERACIONES, Area.ENVIOS)
