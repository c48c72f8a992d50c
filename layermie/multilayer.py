# -*- coding: utf-8 -*-
"""
Stateful interface to the multilayer Mie calculation.

A design is a stack of target layers (inside-out) followed by coating
layers (inside-out), each with a width in applied units and a refractive
index relative to the host (a complex number or a callable of the
wavelength). Results are computed on first request and cached until the
design, the wavelength, the angles, the field points or the options change.

Example
-------
>>> mie = MultiLayerMie()
>>> mie.set_wavelength(500)
>>> mie.add_target_layer(100, 1.5 + 0.01j)
>>> mie.add_coating_layer(50, 1.33)
>>> qext = mie.get_qext()
"""
from dataclasses import dataclass, replace
import numpy as _np
import pandas as _pd
from typing import Callable as _Callable, Optional as _Optional, Union as _Union, List as _List
from .errors import DomainError
from .special import DEFAULT_EPS1, DEFAULT_EPS2, DEFAULT_MAX_ITER
from .coefficients import truncation_order, _check_layers, _layer_recursion
from .sizeparam import (size_parameters, widths_from_size_parameters,
                        points_to_size_parameter, points_from_size_parameter)
from . import miescattering as _mie
from .fields import near_field
from .utils import _check_theta

IndexType = _Union[complex, _Callable[[float], complex]]

@dataclass
class MieOptions:
    '''
    Numerical options of a MultiLayerMie calculation

    Attributes
    ----------
    nmax : int or None
        explicit cap on the number of multipole terms (None: empirical estimate)
    eps1, eps2, max_iter :
        ill-conditioning threshold, convergence threshold and iteration
        budget of the Lentz continued fraction
    '''
    nmax: _Optional[int] = None
    eps1: float = DEFAULT_EPS1
    eps2: float = DEFAULT_EPS2
    max_iter: int = DEFAULT_MAX_ITER

    def __post_init__(self):
        if self.nmax is not None and int(self.nmax) < 1:
            raise DomainError(f"Maximum number of terms must be >= 1, got {self.nmax}.")
        if self.max_iter < 1:
            raise DomainError("max_iter must be >= 1.")

    def lentz(self):
        return dict(eps1=self.eps1, eps2=self.eps2, max_iter=self.max_iter)

def _resolve_index(index, wavelength):
    if callable(index):
        return complex(index(wavelength))
    return complex(index)

class MultiLayerMie:
    '''
    Scattering by a multilayered sphere in a non-absorbing host.

    Parameters
    ----------
    options : MieOptions, optional
        numerical options. Default MieOptions()
    '''
    def __init__(self, options: _Optional[MieOptions] = None):
        self._options = options if options is not None else MieOptions()
        self._wavelength = 1.0
        self._angles = _np.array([])
        self.clear_all_design()

    # ------------------------------------------------------------------
    #   state and cache
    # ------------------------------------------------------------------
    def _invalidate(self):
        self._cache = {}

    @property
    def options(self) -> MieOptions:
        return self._options

    @options.setter
    def options(self, options: MieOptions):
        self._options = options
        self._invalidate()

    def set_max_terms_number(self, nmax: _Optional[int]):
        '''
        Cap the number of multipole terms (None to use the empirical estimate)
        '''
        self.options = replace(self._options, nmax=nmax)

    def set_wavelength(self, wavelength: float):
        wavelength = float(wavelength)
        if not _np.isfinite(wavelength) or wavelength <= 0:
            raise DomainError(f"Wavelength must be finite and > 0, got {wavelength}.")
        self._wavelength = wavelength
        self._invalidate()

    def get_wavelength(self) -> float:
        return self._wavelength

    # ------------------------------------------------------------------
    #   design in applied units
    # ------------------------------------------------------------------
    @staticmethod
    def _check_width(width):
        width = float(width)
        if not _np.isfinite(width) or width < 0:
            raise DomainError(f"Layer width must be finite and >= 0, got {width}.")
        return width

    def _use_applied_design(self):
        self._width_sp = []
        self._index_sp = []
        self._invalidate()

    def add_target_layer(self, layer_width: float, layer_index: IndexType):
        self._target_width.append(self._check_width(layer_width))
        self._target_index.append(layer_index)
        self._use_applied_design()

    def add_coating_layer(self, layer_width: float, layer_index: IndexType):
        self._coating_width.append(self._check_width(layer_width))
        self._coating_index.append(layer_index)
        self._use_applied_design()

    def set_target_width(self, width: _List[float]):
        self._target_width = [self._check_width(w) for w in width]
        self._use_applied_design()

    def set_target_index(self, index: _List[IndexType]):
        self._target_index = list(index)
        self._use_applied_design()

    def set_coating_width(self, width: _List[float]):
        self._coating_width = [self._check_width(w) for w in width]
        self._use_applied_design()

    def set_coating_index(self, index: _List[IndexType]):
        self._coating_index = list(index)
        self._use_applied_design()

    def set_target_pec(self, radius: float):
        '''
        Replace the target by a perfectly conducting sphere of given radius
        '''
        self.clear_target()
        self.add_target_layer(radius, 0j)
        self._pec = True

    def set_pec(self, layer_position: int = 0):
        '''
        Flag a layer as perfect electric conductor. Only the innermost layer
        (position 0) can be a conductor.
        '''
        if layer_position != 0:
            raise DomainError(
                f"Only the innermost layer can be a perfect conductor (got position {layer_position}).")
        self._pec = True
        self._invalidate()

    def clear_target(self):
        self._target_width = []
        self._target_index = []
        self._pec = False
        self._invalidate()

    def clear_coating(self):
        self._coating_width = []
        self._coating_index = []
        self._invalidate()

    def clear_layers(self):
        self.clear_target()
        self.clear_coating()
        self._width_sp = []
        self._index_sp = []

    def clear_all_design(self):
        self.clear_layers()
        self._points = None
        self._points_are_sp = False

    # ------------------------------------------------------------------
    #   design in size parameter units
    # ------------------------------------------------------------------
    def _use_sp_design(self):
        self._target_width, self._target_index = [], []
        self._coating_width, self._coating_index = [], []
        self._invalidate()

    def set_width_sp(self, width: _List[float]):
        '''
        Widths of all layers (inside-out) in size parameter units. Replaces
        the target and coating layers.
        '''
        self._width_sp = [self._check_width(w) for w in width]
        self._use_sp_design()

    def set_index_sp(self, index: _List[complex]):
        '''
        Refractive index of all layers (inside-out) used with set_width_sp
        '''
        self._index_sp = [complex(i) for i in index]
        self._use_sp_design()

    def _is_sp_design(self):
        return len(self._width_sp) > 0 or len(self._index_sp) > 0

    # ------------------------------------------------------------------
    #   angles and field points
    # ------------------------------------------------------------------
    def set_angles_for_pattern(self, from_angle: float, to_angle: float, samples: int):
        '''
        Uniform sweep of scattering angles (radians)
        '''
        if int(samples) < 1:
            raise DomainError("Number of angle samples must be >= 1.")
        self.set_angles(_np.linspace(from_angle, to_angle, int(samples)))

    def set_angles(self, angles: _Union[float, _np.ndarray]):
        self._angles = _check_theta(angles)
        self._invalidate()

    def get_angles(self) -> _np.ndarray:
        return self._angles.copy()

    def set_field_points(self, coords):
        '''
        Observation points (npoints, 3) in applied units
        '''
        self._points = _np.asarray(coords, dtype=float).reshape(-1, 3)
        self._points_are_sp = False
        self._invalidate()

    def set_field_points_sp(self, coords_sp):
        '''
        Observation points (npoints, 3) in size parameter units
        '''
        self._points = _np.asarray(coords_sp, dtype=float).reshape(-1, 3)
        self._points_are_sp = True
        self._invalidate()

    def get_field_points(self) -> _np.ndarray:
        if self._points is None:
            return _np.zeros((0, 3))
        if self._points_are_sp:
            return points_from_size_parameter(self._points, self._wavelength)
        return self._points.copy()

    def get_field_points_sp(self) -> _np.ndarray:
        if self._points is None:
            return _np.zeros((0, 3))
        if self._points_are_sp:
            return self._points.copy()
        return points_to_size_parameter(self._points, self._wavelength)

    # ------------------------------------------------------------------
    #   geometry getters
    # ------------------------------------------------------------------
    def get_target_layers_width(self) -> _List[float]:
        '''
        Width of the target layers in applied units. A design given in size
        parameter units is reported as target layers at the current wavelength.
        '''
        if self._is_sp_design():
            x = _np.cumsum(self._width_sp)
            return list(widths_from_size_parameters(x, self._wavelength))
        return list(self._target_width)

    def get_target_layers_index(self) -> _List[IndexType]:
        if self._is_sp_design():
            return list(self._index_sp)
        return list(self._target_index)

    def get_coating_layers_width(self) -> _List[float]:
        return list(self._coating_width)

    def get_coating_layers_index(self) -> _List[IndexType]:
        return list(self._coating_index)

    def get_target_radius(self) -> float:
        return float(_np.sum(self.get_target_layers_width()))

    def get_coating_width(self) -> float:
        return float(_np.sum(self._coating_width))

    def get_total_radius(self) -> float:
        return self.get_target_radius() + self.get_coating_width()

    def _layers(self, wavelength):
        '''
        Size parameters and indices of the design at a given wavelength
        '''
        if self._is_sp_design():
            if len(self._width_sp) != len(self._index_sp):
                raise DomainError(
                    f"Number of layers mismatch: {len(self._width_sp)} width(s) "
                    f"but {len(self._index_sp)} index(es).")
            x = _np.cumsum(self._width_sp)*self._wavelength/wavelength
            m = _np.array(self._index_sp, dtype=complex)
        else:
            widths = self._target_width + self._coating_width
            index = self._target_index + self._coating_index
            if len(self._target_width) != len(self._target_index) or \
               len(self._coating_width) != len(self._coating_index):
                raise DomainError("Number of layers mismatch between widths and indices.")
            x = size_parameters(widths, wavelength)
            m = _np.array([_resolve_index(i, wavelength) for i in index], dtype=complex)

        if x.size == 0:
            raise DomainError("The design has no layers.")
        return _check_layers(x, m, self._pec)

    def get_layer_width_sp(self) -> _np.ndarray:
        '''
        Width of each layer (inside-out) in size parameter units
        '''
        x, _ = self._layers(self._wavelength)
        return _np.diff(x, prepend=0.)

    def get_layer_index(self) -> _np.ndarray:
        '''
        Refractive index of each layer at the current wavelength
        '''
        return self._layers(self._wavelength)[1]

    # ------------------------------------------------------------------
    #   calculations
    # ------------------------------------------------------------------
    def _coefficients(self, x, m):
        nmax = truncation_order(x[-1], self._options.nmax)
        return _layer_recursion(x, m, nmax, self._pec, **self._options.lentz())

    def _calculate(self):
        if 'an' not in self._cache:
            x, m = self._layers(self._wavelength)
            an, bn = self._coefficients(x, m)
            self._cache.update(x=x, m=m, an=an, bn=bn)
        return self._cache['x'], self._cache['m'], self._cache['an'], self._cache['bn']

    def _cached(self, key, func):
        if key not in self._cache:
            self._cache[key] = func()
        return self._cache[key]

    def get_an(self) -> _np.ndarray:
        return self._calculate()[2].copy()

    def get_bn(self) -> _np.ndarray:
        return self._calculate()[3].copy()

    def get_max_terms_used(self) -> int:
        return self._calculate()[2].size

    def _efficiencies(self):
        def func():
            x, _, an, bn = self._calculate()
            return _mie.efficiencies(an, bn, x[-1])
        return self._cached('efficiencies', func)

    def get_qext(self) -> float:
        return self._efficiencies()[0]

    def get_qsca(self) -> float:
        return self._efficiencies()[1]

    def get_qabs(self) -> float:
        return self._efficiencies()[2]

    def get_qbk(self) -> float:
        return self._efficiencies()[3]

    def get_qpr(self) -> float:
        return self._efficiencies()[4]

    def _geometric_cross_section(self):
        x = self._calculate()[0]
        return _np.pi*(x[-1]*self._wavelength/(2*_np.pi))**2

    def get_rcs_ext(self) -> float:
        return self.get_qext()*self._geometric_cross_section()

    def get_rcs_sca(self) -> float:
        return self.get_qsca()*self._geometric_cross_section()

    def get_rcs_abs(self) -> float:
        return self.get_qabs()*self._geometric_cross_section()

    def get_rcs_bk(self) -> float:
        return self.get_qbk()*self._geometric_cross_section()

    def _channels(self, normalized):
        def func():
            x, _, an, bn = self._calculate()
            return _mie.channel_efficiencies(an, bn, x[-1], normalize=normalized)
        return self._cached(('channels', normalized), func)

    def get_qext_channel(self, normalized: bool = False) -> _np.ndarray:
        return self._channels(normalized)[0].copy()

    def get_qsca_channel(self, normalized: bool = False) -> _np.ndarray:
        return self._channels(normalized)[1].copy()

    def get_qabs_channel(self, normalized: bool = False) -> _np.ndarray:
        return self._channels(normalized)[2].copy()

    def get_qbk_channel(self, normalized: bool = False) -> _np.ndarray:
        return self._channels(normalized)[3].copy()

    def get_qpr_channel(self, normalized: bool = False) -> _np.ndarray:
        return self._channels(normalized)[4].copy()

    def get_asymmetry_factor(self) -> float:
        qext, qsca, _, _, qpr = self._efficiencies()
        return _mie._asymmetry_from_efficiencies(qext, qsca, qpr)

    def get_albedo(self) -> float:
        qext, qsca = self._efficiencies()[:2]
        return _mie._albedo_from_efficiencies(qext, qsca)

    # ------------------------------------------------------------------
    #   angular scattering
    # ------------------------------------------------------------------
    def _amplitudes(self):
        if self._angles.size == 0:
            raise DomainError("No scattering angles set (use set_angles or set_angles_for_pattern).")

        def func():
            _, _, an, bn = self._calculate()
            return _mie.scattering_amplitudes(an, bn, self._angles)
        return self._cached('amplitudes', func)

    def get_s1(self) -> _np.ndarray:
        return self._amplitudes()[0].copy()

    def get_s2(self) -> _np.ndarray:
        return self._amplitudes()[1].copy()

    def _patterns(self):
        def func():
            s1, s2 = self._amplitudes()
            return _mie.scattering_patterns(s1, s2, self._calculate()[0][-1])
        return self._cached('patterns', func)

    def get_pattern_ek(self) -> _np.ndarray:
        return self._patterns()[0].copy()

    def get_pattern_hk(self) -> _np.ndarray:
        return self._patterns()[1].copy()

    def get_pattern_unpolarized(self) -> _np.ndarray:
        return self._patterns()[2].copy()

    # patterns are dimensionless, size parameter variants give the same values
    get_pattern_ek_sp = get_pattern_ek
    get_pattern_hk_sp = get_pattern_hk
    get_pattern_unpolarized_sp = get_pattern_unpolarized

    # ------------------------------------------------------------------
    #   near field
    # ------------------------------------------------------------------
    def _fields(self):
        if self._points is None or len(self._points) == 0:
            raise DomainError("No field points set (use set_field_points or set_field_points_sp).")

        def func():
            x, m, an, bn = self._calculate()
            return near_field(self.get_field_points_sp(), x, m, an, bn,
                              pec=self._pec, **self._options.lentz())
        return self._cached('fields', func)

    def get_field_e(self) -> _np.ndarray:
        '''
        Electric field (npoints, 3) normalized to the incident amplitude
        '''
        return self._fields()[0].copy()

    def get_field_h(self) -> _np.ndarray:
        '''
        Magnetic field (npoints, 3) normalized to the incident amplitude
        '''
        return self._fields()[1].copy()

    # ------------------------------------------------------------------
    #   spectra
    # ------------------------------------------------------------------
    def _spectrum_row(self, x, m):
        an, bn = self._coefficients(x, m)
        return _mie.efficiencies(an, bn, x[-1])[:4]

    def get_spectra(self, from_wl: float, to_wl: float, samples: int,
                    as_ndarray: bool = False):
        '''
        Efficiencies over a uniform wavelength sweep (applied units).
        Dispersive layer indices are evaluated at each wavelength.

        Returns
        -------
        pandas.DataFrame
            columns Qext, Qsca, Qabs, Qbk indexed by wavelength
            (or (samples, 5) ndarray with the wavelength in the first column)
        '''
        if int(samples) < 1:
            raise DomainError("Number of spectral samples must be >= 1.")
        lam = _np.linspace(from_wl, to_wl, int(samples))
        if _np.any(lam <= 0):
            raise DomainError("Wavelengths must be > 0.")

        qeff = _np.array([self._spectrum_row(*self._layers(wl)) for wl in lam])
        if as_ndarray:
            return _np.column_stack((lam, qeff))
        return _pd.DataFrame(data=qeff,
                             index=_pd.Index(lam, name='Wavelength'),
                             columns=['Qext', 'Qsca', 'Qabs', 'Qbk'])

    def get_spectra_sp(self, from_sp: float, to_sp: float, samples: int,
                       as_ndarray: bool = False):
        '''
        Efficiencies over a uniform sweep of the outer size parameter. Layer
        proportions and indices (at the current wavelength) are kept fixed.

        Returns
        -------
        pandas.DataFrame
            columns Qext, Qsca, Qabs, Qbk indexed by outer size parameter
            (or (samples, 5) ndarray with the size parameter in the first column)
        '''
        if int(samples) < 1:
            raise DomainError("Number of spectral samples must be >= 1.")
        xs = _np.linspace(from_sp, to_sp, int(samples))
        if _np.any(xs <= 0):
            raise DomainError("Size parameters must be > 0.")

        x, m = self._layers(self._wavelength)
        qeff = _np.array([self._spectrum_row(x*xo/x[-1], m) for xo in xs])
        if as_ndarray:
            return _np.column_stack((xs, qeff))
        return _pd.DataFrame(data=qeff,
                             index=_pd.Index(xs, name='Size parameter'),
                             columns=['Qext', 'Qsca', 'Qabs', 'Qbk'])
