# config.py
import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# ======= Search caps (0 = unlimited) =======
MAX_SOLUTIONS = int(os.getenv("DLX_MAX_SOLUTIONS", "0"))
NODE_LIMIT    = int(os.getenv("DLX_NODE_LIMIT", "0"))

# ======= Recursion =======
# The search recurses once per chosen row, so depth is bounded by the column
# count.  The interpreter limit is raised to columns + headroom when lower.
RECURSION_HEADROOM = int(os.getenv("DLX_RECURSION_HEADROOM", "200"))

# ======= Output names =======
SOLUTIONS_OUT = os.getenv("DLX_SOLUTIONS_OUT", "solutions.txt")
LOG_DIR       = os.getenv("DLX_LOG_DIR", os.path.join(BASE_DIR, "logs"))


class CFG:
    MAX_SOLUTIONS = MAX_SOLUTIONS
    NODE_LIMIT    = NODE_LIMIT

    RECURSION_HEADROOM = RECURSION_HEADROOM

    SOLUTIONS_OUT = SOLUTIONS_OUT
    LOG_DIR       = LOG_DIR


__all__ = ["CFG", "BASE_DIR"]
