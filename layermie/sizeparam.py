# -*- coding: utf-8 -*-
"""
Conversion between applied units and dimensionless size parameters.

A length L at wavelength lam (same units) corresponds to the size parameter
2*pi*L/lam. Layer widths are accumulated into the radius of each boundary
before conversion.
"""
import numpy as _np
from .errors import DomainError

def _check_wavelength(wavelength):
    wavelength = float(wavelength)
    if not _np.isfinite(wavelength) or wavelength <= 0:
        raise DomainError(f"Wavelength must be finite and > 0, got {wavelength}.")
    return wavelength

def size_parameters(widths, wavelength):
    '''
    Size parameter of the outer boundary of each layer.

    Parameters
    ----------
    widths : 1D array-like
        width of each layer, innermost first (applied units)
    wavelength : float
        wavelength in the host (same units as widths)

    Returns
    -------
    1D numpy array
        x_i = 2*pi*R_i/wavelength, with R_i the cumulative radius
    '''
    wavelength = _check_wavelength(wavelength)
    widths = _np.asarray(widths, dtype=float).ravel()
    if not _np.all(_np.isfinite(widths)) or _np.any(widths < 0):
        raise DomainError("Layer widths must be finite and >= 0.")

    return 2*_np.pi*_np.cumsum(widths)/wavelength

def widths_from_size_parameters(x, wavelength):
    '''
    Layer widths (applied units) from the size parameter of each boundary.
    Inverse of size_parameters.
    '''
    wavelength = _check_wavelength(wavelength)
    x = _np.asarray(x, dtype=float).ravel()
    widths = _np.diff(x, prepend=0.)
    if not _np.all(_np.isfinite(x)) or _np.any(widths < 0):
        raise DomainError("Size parameters must be finite and non-decreasing.")

    return widths*wavelength/(2*_np.pi)

def points_to_size_parameter(points, wavelength):
    '''
    Convert cartesian coordinates (npoints, 3) to size-parameter units
    '''
    wavelength = _check_wavelength(wavelength)
    points = _np.asarray(points, dtype=float).reshape(-1, 3)
    return 2*_np.pi*points/wavelength

def points_from_size_parameter(points_sp, wavelength):
    '''
    Convert cartesian coordinates (npoints, 3) from size-parameter units to
    applied units
    '''
    wavelength = _check_wavelength(wavelength)
    points_sp = _np.asarray(points_sp, dtype=float).reshape(-1, 3)
    return points_sp*wavelength/(2*_np.pi)
