from dataclasses import dataclass
from typing import ClassVar


@dataclass(frozen=True)
class Regency:
    code: str
    province_code: str
    name: str

    csv_headers: ClassVar[tuple[str, ...]] = ("code", "province_code", "name")

    def to_csv_row(self) -> list[str]:
        return [self.code, self.province_code, self.name]


@dataclass(frozen=True)
class District:
    code: str
    regency_code: str
    name: str

    csv_headers: ClassVar[tuple[str, ...]] = ("code", "regency_code", "name")

    def to_csv_row(self) -> list[str]:
        return [self.code, self.regency_code, self.name]


@dataclass(frozen=True)
class Island:
    code: str
    regency_code: str
    """Empty for islands not assigned to a regency ('NN.00.4NNNN')."""
    name: str
    coordinate: str
    is_populated: bool
    is_outermost_small: bool

    csv_headers: ClassVar[tuple[str, ...]] = (
        "code",
        "regency_code",
        "coordinate",
        "is_populated",
        "is_outermost_small",
        "name",
    )

    def to_csv_row(self) -> list[str]:
        return [
            self.code,
            self.regency_code,
            self.coordinate,
            "1" if self.is_populated else "0",
            "1" if self.is_outermost_small else "0",
            self.name,
        ]


@dataclass(frozen=True)
class Village:
    code: str
    district_code: str
    name: str

    csv_headers: ClassVar[tuple[str, ...]] = ("code", "district_code", "name")

    def to_csv_row(self) -> list[str]:
        return [self.code, self.district_code, self.name]


AreaRecord = Regency | District | Island | Village
