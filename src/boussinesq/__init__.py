"""
*boussinesq*

Mass-conservative finite-volume solver for the unconfined-aquifer (Boussinesq)
groundwater-flow equation on unstructured polygonal meshes.
"""

from .errors import *  # noqa
from .types import *  # noqa
from .config import *  # noqa
from .mesh import *  # noqa
from .factories import *  # noqa
from .assembly import *  # noqa
from .solvers import *  # noqa
from .states import *  # noqa
from .newton import *  # noqa
from .simulate import *  # noqa
