import enum


class PartModule(str, enum.Enum):
    clean = "clean"
    maintenance = "maintenance"


class MovementType(str, enum.Enum):
    inbound = "entrada"
    outbound = "saida"
    adjustment = "ajuste"


class OrderStatus(str, enum.Enum):
    pending = "pendente"
    confirmed = "confirmado"
    shipped = "enviado"
    received = "recebido"
    cancelled = "cancelado"


class OrderSource(str, enum.Enum):
    manual = "manual"
    auto_generated = "auto_generated"


class OrderPriority(str, enum.Enum):
    low = "baixa"
    medium = "media"
    high = "alta"


class SkipReason(str, enum.Enum):
    supplier_missing = "supplier_missing"
    # low stock at scan time, no longer qualifying once its group was locked
    changed_during_run = "changed_during_run"
