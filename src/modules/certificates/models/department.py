from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Department:
    code: str
    display_name: str


HOD_DEPARTMENT = "HOD"

ACADEMIC_DEPARTMENTS: Tuple[Department, ...] = (
    Department("CSE", "Computer Science & Engineering"),
    Department("ECE", "Electronics & Communication Engineering"),
    Department("ME", "Mechanical Engineering"),
    Department("CE", "Civil Engineering"),
    Department("EE", "Electrical Engineering"),
    Department("IT", "Information Technology"),
    Department("BT", "Biotechnology"),
    Department("CH", "Chemical Engineering"),
    Department("AE", "Aerospace Engineering"),
    Department("PHY", "Physics"),
    Department("CHEM", "Chemistry"),
    Department("MATH", "Mathematics"),
)

# Order matches the printed certificate
ADMINISTRATIVE_DEPARTMENTS: Tuple[Department, ...] = (
    Department("LIBRARY", "Library"),
    Department("TRAINING_AND_PLACEMENT", "Training & Placement"),
    Department("SPORTS", "Sports"),
    Department("OFFICE", "Administrative Office"),
    Department(HOD_DEPARTMENT, "Head of Department"),
    Department("IES_LIBRARY", "IES Library"),
    Department("TRANSPORT", "Transport"),
    Department("HOSTEL", "Hostel"),
    Department("ACCOUNTS", "Accounts"),
    Department("STUDENT_SECTION", "Student Section"),
)

ALL_DEPARTMENTS: Tuple[Department, ...] = ACADEMIC_DEPARTMENTS + ADMINISTRATIVE_DEPARTMENTS


def get_department_name(code: str) -> str:
    for department in ALL_DEPARTMENTS:
        if department.code == code:
            return department.display_name
    return code


class DepartmentRegistry:
    """
    Fixed, ordered list of departments every certificate must be cleared by.
    """

    def __init__(self, codes: Optional[List[str]] = None):
        if codes is None:
            self._departments = ADMINISTRATIVE_DEPARTMENTS
        else:
            self._departments = tuple(Department(code, get_department_name(code)) for code in codes)

    @classmethod
    def from_settings(cls, settings) -> "DepartmentRegistry":
        return cls(settings.required_departments or None)

    def list_required_departments(self) -> List[str]:
        return [department.code for department in self._departments]

    def departments(self) -> List[Department]:
        return list(self._departments)

    def __contains__(self, code: str) -> bool:
        return any(department.code == code for department in self._departments)

    def __len__(self) -> int:
        return len(self._departments)
