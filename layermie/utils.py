import warnings as _warnings
import numpy as _np
from typing import Union as _Union, Optional as _Optional
from inspect import Signature as _Signature
from .errors import DomainError

# standard constants
e_charge = 1.602176634E-19      # C (elementary charge)
hbar = 1.0545718E-34            # J*s (plank's constant)
speed_of_light = 299792458      # m/s (speed of light)

# a function to convert units of wavelength-like quantities
def convert_units(x, x_in, to):
    '''
    Convert units of a variable. Accepted units for conversion are:
        nanometers              : 'nm'
        micrometers             : 'um'
        recriprocal centimeters : 'cm^-1'
        frequency               : 'Hz'
        angular frequency       : 'rad/s'
        electron voltz          : 'eV'

    Parameters
    ----------
    x : ndarray
        list of values to convert.
    x_in : string
        units of the input variable.
    to : string
        conversion units.

    Returns
    -------
    ndarray
        coverted list of values.

    '''
    unit_dict = ['nm', 'um', 'cm^-1', 'Hz', 'rad/s', 'eV']
    if x_in not in unit_dict:
        raise DomainError('Unknown unit: ' + x_in)
    if to not in unit_dict:
        raise DomainError('Unknown unit: ' + to)

    PI = _np.pi
    c0 = speed_of_light             # m/s (speed of light)
    h = 2*PI*hbar/e_charge          # eV/Hz (plank's constant)
    x = _np.asarray(x, dtype=float) if not _np.isscalar(x) else x

    # everything goes through micrometers
    to_um = {
        'nm'    : lambda v: v*1E-3,
        'um'    : lambda v: v,
        'cm^-1' : lambda v: 1/v*1E4,
        'Hz'    : lambda v: c0/v*1E6,
        'rad/s' : lambda v: 2*PI*c0/v*1E6,
        'eV'    : lambda v: h*c0/v*1E6,
        }
    from_um = {
        'nm'    : lambda v: v*1E3,
        'um'    : lambda v: v,
        'cm^-1' : lambda v: 1/v*1E4,
        'Hz'    : lambda v: c0/v*1E6,
        'rad/s' : lambda v: 2*PI*c0/v*1E6,
        'eV'    : lambda v: h*c0/v*1E6,
        }

    if x_in == to:
        return x
    return from_um[to](to_um[x_in](x))

def _check_mie_inputs(lam=None, N_host=None, Np_shells=None, D=None):
    """
    Validate and normalize inputs for multilayer-sphere calculations.

    Parameters
    ----------
    lam : float or (nλ,) array-like of float, optional
        Wavelength(s) in micrometers (µm). Must be finite and > 0.
    N_host : complex or (nλ,) array-like of complex, optional
        Host refractive index. If scalar, it is broadcast to (nλ,).
    Np_shells : scalar complex, (nλ,) array-like, list/tuple of those,
                or (n_layers, nλ) ndarray, optional
        Refractive index for each shell layer (inner to outer).
    D : float or list of float, optional
        Outer diameter of each layer (µm), strictly increasing.

    Returns
    -------
    lam_out : (nλ,) ndarray of float or None
    N_host_out : (nλ,) ndarray of complex or None
    Np_out : (n_layers, nλ) ndarray of complex or None
    D_out : (n_layers,) ndarray of float or None
    """
    # ---- lam ----
    lam_out = None
    if lam is not None:
        lam_arr = _np.asarray(lam, dtype=float).ravel()
        if lam_arr.size == 0:
            raise DomainError("lam must be a 1D array (non-empty) or a scalar.")
        if not _np.all(_np.isfinite(lam_arr)) or _np.any(lam_arr <= 0):
            raise DomainError("All wavelengths in lam must be finite and > 0 (µm).")
        lam_out = lam_arr

    nlam = None if lam_out is None else lam_out.size

    # ---- D (diameters) ----
    D_out = None
    if D is not None:
        D_arr = _np.asarray(D, dtype=float).ravel()
        if D_arr.size == 0:
            raise DomainError("D cannot be empty.")
        if not _np.all(_np.isfinite(D_arr)) or _np.any(D_arr <= 0):
            raise DomainError("All diameters in D must be finite and > 0 (µm).")
        if _np.any(_np.diff(D_arr) <= 0):
            raise DomainError("For multilayer spheres, D must be strictly increasing (inner < ... < outer).")
        D_out = D_arr

    # ---- Np_shells (layers) → (n_layers, nλ)
    def to_layer_array(x):
        xa = _np.asarray(x)
        if xa.ndim == 0:
            if nlam is None:
                return _np.array([complex(xa)], dtype=complex)
            return _np.full(nlam, complex(xa), dtype=complex)
        arr = xa.astype(complex).ravel()
        if lam_out is None:
            raise DomainError("Spectral refractive index provided but lam is None. Provide lam.")
        if arr.size != nlam:
            raise DomainError(f"A spectral layer has length {arr.size}, expected len(lam)={nlam}.")
        return arr

    Np_out = None
    if Np_shells is not None:
        if isinstance(Np_shells, (list, tuple)):
            if len(Np_shells) == 0:
                raise DomainError("Np_shells list cannot be empty.")
            Np_out = _np.vstack([to_layer_array(x) for x in Np_shells])
        else:
            arr = _np.asarray(Np_shells)
            if arr.ndim <= 1:
                Np_out = to_layer_array(arr).reshape(1, -1)
            elif arr.ndim == 2:
                if lam_out is None:
                    raise DomainError("2D Np_shells provided but lam is None. Provide lam.")
                if arr.shape[1] != nlam:
                    raise DomainError(f"Np_shells second dimension must equal len(lam)={nlam}.")
                Np_out = arr.astype(complex)
            else:
                raise DomainError("Np_shells must be scalar, 1D array, list/tuple of scalars/1D arrays, or 2D array.")

    # ---- Cross-check layers vs diameters ----
    if (Np_out is not None) and (D_out is not None):
        if Np_out.shape[0] != D_out.size:
            raise DomainError(
                f"Number of layers mismatch: len(D)={D_out.size} but Np_shells has {Np_out.shape[0]} layer(s).")

    # ---- N_host ----
    N_host_out = None
    if N_host is not None:
        N_host_out = to_layer_array(N_host)
        if _np.any(N_host_out.real <= 0):
            raise DomainError("Real part of N_host must be > 0.")

    # ---- Final NaN/Inf guards ----
    for name, arr in [("N_host", N_host_out), ("Np_shells", Np_out)]:
        if arr is not None and not _np.all(_np.isfinite(arr)):
            raise DomainError(f"{name} contains non-finite values.")

    return lam_out, N_host_out, Np_out, D_out

def _check_theta(theta: _Optional[_Union[float, _np.ndarray]],
                 n_theta: int = 181) -> _np.ndarray:
    """
    Validate and format the scattering angle array (theta).

    Parameters
    ----------
    theta : float or ndarray or None
        Scattering angle(s) in radians. If None, generates a grid from 0 to π.
    n_theta : int, optional
        Number of points in the angular grid if `theta` is None.

    Returns
    -------
    theta : _np.ndarray
        1D array of angles in radians, shape (n_theta,).
    """
    if theta is None:
        theta = _np.linspace(0.0, _np.pi, max(int(n_theta), 5))

    elif _np.isscalar(theta):
        theta = _np.array([float(theta)])

    else:
        theta = _np.asarray(theta, dtype=float).ravel()

    if not _np.all(_np.isfinite(theta)):
        raise DomainError("Scattering angles must be finite.")

    return theta

# decorator to hide function signature
def _hide_signature(func):
    func.__signature__ = _Signature()
    return func

def _warn_extrapolation(lam_arr, lo, hi, label="", quantity=""):
    lam_min = float(_np.min(lam_arr))
    lam_max = float(_np.max(lam_arr))
    if lam_min < lo and lam_max > hi:
        _warnings.warn(
            f"Extrapolating {label} {quantity} (requested {lam_min:.3f}–{lam_max:.3f} µm; "
            f"data {lo:.3f}–{hi:.3f} µm)", RuntimeWarning)

    else:
        if lam_min < lo:
            _warnings.warn(
                f"Extrapolating {label} {quantity} below tabulated range "
                f"(requested min {lam_min:.3f} µm; data starts {lo:.3f} µm)", RuntimeWarning)
        if lam_max > hi:
            _warnings.warn(
                f"Extrapolating {label} {quantity} above tabulated range "
                f"(requested max {lam_max:.3f} µm; data ends {hi:.3f} µm)", RuntimeWarning)
