__title__ = 'layermie'
__version__ = '0.1.0'
__description__ = 'Light scattering by multilayered spheres'
__author__ = 'The layermie developers'
__credits__ = 'The layermie developers'
__license__ = 'MIT'
__build__ = 0
__copyright__ = 'Copyright 2026 The layermie developers'

from .errors import *
from .utils import convert_units
from .sizeparam import *
from .special import *
from .coefficients import *
from .miescattering import *
from .fields import *
from .nklib import *
from .multilayer import *
