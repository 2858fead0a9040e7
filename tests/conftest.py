"""Captured scheduler command output shared across test modules."""

import pytest

BHOSTS_OUTPUT = """\
HOST_NAME          STATUS       JL/U    MAX  NJOBS    RUN  SSUSP  USUSP    RSV
node01             ok              -     16      4      4      0      0      0
node02             unavail         -      8      0      0      0      0      0
"""

LSLOAD_OUTPUT = """\
HOST_NAME       status  r15s   r1m  r15m   ut    pg  ls    it   tmp   swp   mem
node01              ok   0.5   0.7   0.9  12%   0.0   1     2   20G    4G   12G
"""

BJOBS_OUTPUT = """\
JOBID   USER    STAT  QUEUE      FROM_HOST   EXEC_HOST   JOB_NAME   SUBMIT_TIME
1001    alice   RUN   normal     login01     node01      my analysis run Oct 18 10:00
1002    bob     PEND  normal     login01                 sim[3]     Oct 18 10:05
1003    carol   RUN   long       login02     4*node02    train      Oct 17 23:59
                                             4*node03
"""

LAVA_BJOBS_OUTPUT = """\
JOBID USER STAT QUEUE FROM_HOST EXEC_HOST JOB_NAME SUBMIT_TIME
101 alice RUN normal login01 node01 job1 Oct 18 10:00
102 bob PEND normal login01 job2 Oct 18 10:05
"""

PBSNODES_OUTPUT = (
    "<Data>"
    "<Node><name>node01</name><state>free</state><power_state>Running</power_state>"
    "<np>16</np><ntype>cluster</ntype><jobs>0/123.server,1/124.server</jobs>"
    "<status>rectime=1700000000,state=free,loadave=0.50,physmem=65857040kb,"
    "opsys=linux</status></Node>"
    "<Node><name>node02</name><state>down,offline</state><np>8</np>"
    "<status></status></Node>"
    "</Data>"
)

QSTAT_OUTPUT = (
    "<Data>"
    "<Job><Job_Id>123.server</Job_Id><Job_Name>sim</Job_Name>"
    "<Job_Owner>alice@login01</Job_Owner>"
    "<resources_used><cput>00:10:00</cput><mem>1024kb</mem>"
    "<walltime>00:05:00</walltime></resources_used>"
    "<job_state>R</job_state><queue>batch</queue><exec_host>node01/0</exec_host>"
    "<Resource_List><nodes>1:ppn=1</nodes></Resource_List>"
    "<ctime>1700000000</ctime>"
    "<Variable_List>PBS_O_HOME=/home/alice,PBS_O_HOST=login01</Variable_List></Job>"
    "<Job><Job_Id>124[].server</Job_Id><Job_Name>arr</Job_Name>"
    "<Job_Owner>bob@login01</Job_Owner><job_state>Q</job_state><queue>batch</queue>"
    "<job_array_request>1-10</job_array_request>"
    "<Variable_List>PBS_O_HOST=login02</Variable_List></Job>"
    "</Data>"
)


@pytest.fixture
def bhosts_output() -> str:
    """bhosts with one healthy and one unavailable host."""
    return BHOSTS_OUTPUT


@pytest.fixture
def lsload_output() -> str:
    """lsload reporting only the first host."""
    return LSLOAD_OUTPUT


@pytest.fixture
def bjobs_output() -> str:
    """bjobs -w with a spaced name, a pending array element and two exec hosts."""
    return BJOBS_OUTPUT


@pytest.fixture
def lava_bjobs_output() -> str:
    """Lava bjobs with one dispatched and one pending job."""
    return LAVA_BJOBS_OUTPUT


@pytest.fixture
def pbsnodes_output() -> str:
    """pbsnodes -x with a free node and a down node."""
    return PBSNODES_OUTPUT


@pytest.fixture
def qstat_output() -> str:
    """qstat -x with a running job and a queued array job."""
    return QSTAT_OUTPUT
