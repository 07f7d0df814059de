"""
科目成绩数据模型与加权平均计算
"""

import math
from collections.abc import Mapping
from dataclasses import dataclass, asdict, field
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple


UNKNOWN_SUBJECT = "Unknown"

# 规范字段 -> 上游可能使用的字段名（按优先级排列）
FIELD_CANDIDATES: Dict[str, Tuple[str, ...]] = {
    "name": ("name", "intitule", "libelle"),
    "average": ("average", "moyenne", "moy"),
    "coefficient": ("coefficient", "coeff", "coefficientMatiere"),
}


def _lookup(raw: Any, key: str) -> Any:
    if isinstance(raw, Mapping):
        return raw.get(key)
    return getattr(raw, key, None)


def resolve_field(raw: Any, candidates: Iterable[str],
                  accept: Callable[[Any], bool]) -> Any:
    """按候选字段顺序取第一个被 accept 接受的值，找不到返回 None。

    raw 既可以是字典，也可以是任意带属性的对象。
    """
    if raw is None:
        return None
    for key in candidates:
        value = _lookup(raw, key)
        if accept(value):
            return value
    return None


def _is_present(value: Any) -> bool:
    # 0 是合法值，只排除 None
    return value is not None


def _is_non_empty(value: Any) -> bool:
    if value is None:
        return False
    return str(value).strip() != ""


def to_number(value: Any) -> Optional[float]:
    """把成绩/系数解析为有限浮点数。

    - 支持 int/float 以及 "12.5"、"12,5" 这样的字符串
    - bool、空串、无法解析的字符串、NaN/inf 返回 None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = value
    else:
        raw = str(value).strip().replace(",", ".")
        if not raw:
            return None
    try:
        number = float(raw)
    except (ValueError, OverflowError):
        # 超出浮点范围的整数同样视为无效
        return None
    if not math.isfinite(number):
        return None
    return number


@dataclass
class CanonicalSubjectRecord:
    """规范化后的科目记录"""

    name: str  # 科目名称，缺失时为 "Unknown"
    average: Optional[float] = None  # 科目平均分
    coefficient: Optional[float] = None  # 系数，None 视为 1

    def to_dict(self):
        """转换为字典格式"""
        return asdict(self)

    @classmethod
    def from_raw_data(cls, raw: Any) -> "CanonicalSubjectRecord":
        """从上游原始记录创建规范化记录，缺失或异常字段一律降级为默认值"""
        name = resolve_field(raw, FIELD_CANDIDATES["name"], _is_non_empty)
        average = resolve_field(raw, FIELD_CANDIDATES["average"], _is_present)
        coefficient = resolve_field(raw, FIELD_CANDIDATES["coefficient"], _is_present)
        return cls(
            name=str(name).strip() if name is not None else UNKNOWN_SUBJECT,
            average=to_number(average),
            coefficient=to_number(coefficient),
        )


def normalize_subjects(raw_subjects: Iterable[Any]) -> List[CanonicalSubjectRecord]:
    """逐条规范化，输出与输入等长且顺序一致"""
    return [CanonicalSubjectRecord.from_raw_data(raw) for raw in raw_subjects]


def calculate_weighted_average(records: Iterable[CanonicalSubjectRecord]) -> Optional[float]:
    """计算加权平均分。

    Σ(average × coefficient) / Σ(coefficient)

    - 没有数值平均分的科目整体跳过（系数也不计入分母）
    - 系数缺失或非数值时按 1 计算
    - 分母为 0 时返回 None
    """
    total = Decimal(0)
    total_coefficient = Decimal(0)

    for record in records:
        average = to_number(getattr(record, "average", None))
        if average is None:
            continue

        coefficient = to_number(getattr(record, "coefficient", None))
        if coefficient is None:
            coefficient = 1.0

        # 用 Decimal 累加，避免 1e308 这类大数在中间结果溢出为 inf/NaN
        total += Decimal(repr(average)) * Decimal(repr(coefficient))
        total_coefficient += Decimal(repr(coefficient))

    if total_coefficient == 0:
        return None
    result = float(total / total_coefficient)
    # 只有负系数才可能让结果超出浮点范围
    if not math.isfinite(result):
        return None
    return result


def round_average(value: Optional[float], places: int = 2) -> Optional[float]:
    """四舍五入（远离零）保留 places 位小数"""
    if value is None or not math.isfinite(value):
        return None
    number = Decimal(repr(value))
    quantum = Decimal(1).scaleb(-int(places))
    with localcontext() as ctx:
        # quantize 要求精度覆盖整数位
        ctx.prec = max(ctx.prec, number.adjusted() + int(places) + 2)
        return float(number.quantize(quantum, rounding=ROUND_HALF_UP))


@dataclass
class AverageResult:
    """一次请求的计算结果"""

    overall_average: Optional[float]
    details: List[CanonicalSubjectRecord] = field(default_factory=list)

    @classmethod
    def from_records(cls, records: List[CanonicalSubjectRecord]) -> "AverageResult":
        return cls(
            overall_average=round_average(calculate_weighted_average(records)),
            details=list(records),
        )

    def to_dict(self) -> Dict[str, Any]:
        """转换为接口返回格式"""
        return {
            "overallAverage": self.overall_average,
            "details": [record.to_dict() for record in self.details],
        }
