"""Raw table records parsed from LSF command output.

Pydantic models representing one row of ``bhosts`` or ``lsload`` output
with minimal processing. Numeric columns degrade to 0 when a cell is not
a number (``-`` is common for unset limits).
"""

from pydantic import BaseModel, ConfigDict, field_validator

from . import decode


class Host(BaseModel):
    """One ``bhosts`` row.

    Columns: HOST_NAME STATUS JL/U MAX NJOBS RUN SSUSP USUSP RSV.
    """

    model_config = ConfigDict(frozen=True)

    hostname: str
    status: str = ""

    # Job slot limits and counts
    user_slot_limit: int = 0
    max_slots: int = 0
    num_jobs: int = 0
    running: int = 0
    system_suspended: int = 0
    user_suspended: int = 0
    reserved: int = 0

    @field_validator(
        "user_slot_limit",
        "max_slots",
        "num_jobs",
        "running",
        "system_suspended",
        "user_suspended",
        "reserved",
        mode="before",
    )
    @classmethod
    def _int_or_zero(cls, value: object) -> object:
        if isinstance(value, str):
            return decode.to_int(value)
        return value


class Load(BaseModel):
    """One ``lsload`` row.

    Columns: HOST_NAME status r15s r1m r15m ut pg ls it tmp swp mem. Values
    are kept as the display strings lsload prints (``12%``, ``3.2G``).
    """

    model_config = ConfigDict(frozen=True)

    hostname: str
    status: str = ""

    # Run queue length averages
    r15s: str = ""
    r1m: str = ""
    r15m: str = ""

    utilization: str = ""
    paging: str = ""
    logins: str = ""
    idle_time: str = ""

    # Free space figures
    tmp: str = ""
    swap: str = ""
    memory: str = ""
