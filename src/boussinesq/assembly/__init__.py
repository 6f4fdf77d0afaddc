from .conductance import *  # noqa
from .residual import *  # noqa
from .jacobian import *  # noqa
