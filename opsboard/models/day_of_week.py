"""
Day-of-week enum shared by day-recurring records (purchases, tasks, sites)
"""
import enum


class DayOfWeek(str, enum.Enum):
    MON = "MON"
    TUE = "TUE"
    WED = "WED"
    THU = "THU"
    FRI = "FRI"
    SAT = "SAT"
    SUN = "SUN"

    @classmethod
    def from_weekday(cls, weekday: int) -> "DayOfWeek":
        """Map datetime.weekday() (Monday == 0) to a DayOfWeek"""
        return list(cls)[weekday]
