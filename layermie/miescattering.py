# -*- coding: utf-8 -*-
"""
Far-field observables of a multilayered sphere computed from its Mie
coefficients: efficiencies (total and per multipole order), asymmetry
factor, albedo, scattering amplitudes and angular patterns.

Formulas follow

- Bohren, C. F.; Huffman, D. R. (1983). Absorption and Scattering of Light
    by Small Particles. Wiley.
"""
import numpy as _np
from numpy import pi, conj, real
import pandas as _pd
from typing import Union as _Union, List as _List
from .errors import DomainError
from .coefficients import truncation_order, _check_layers, _layer_recursion
from .utils import _check_mie_inputs, _check_theta, _hide_signature

def _check_coefficients(an, bn):
    an = _np.asarray(an, dtype=complex).ravel()
    bn = _np.asarray(bn, dtype=complex).ravel()
    if an.size != bn.size or an.size == 0:
        raise DomainError(
            f"an and bn must be non-empty and of equal length ({an.size} != {bn.size}).")
    return an, bn

def _asymmetry_sum(an, bn):
    '''
    Per-order terms of g*Qsca*x^2/4 (Bohren & Huffman, eq. 4.74)
    '''
    nmax = an.size
    n = _np.arange(1, nmax + 1)
    anp1 = _np.zeros(nmax, dtype=_np.complex128)
    bnp1 = _np.zeros(nmax, dtype=_np.complex128)
    anp1[:nmax-1] = an[1:] # a(n+1) coefficient
    bnp1[:nmax-1] = bn[1:] # b(n+1) coefficient

    return n*(n + 2)/(n + 1)*real(an*conj(anp1) + bn*conj(bnp1)) \
         + (2*n + 1)/(n*(n + 1))*real(an*conj(bn))

def channel_efficiencies(an, bn, x, normalize=False):
    '''
    Contribution of each multipole order to the efficiencies.

    Parameters
    ----------
    an, bn : 1D array-like
        mie coefficients (orders 1..nmax)
    x : float
        size parameter of the outer layer
    normalize : bool, optional
        if True, the contribution of order n is divided by 2(2n+1)/x^2.
        Scattering channels are then bounded by 2 and absorption channels
        by 1/2. Default False

    Returns
    -------
    Qext, Qsca, Qabs, Qbk, Qpr : 1D numpy arrays (size nmax)

    Notes
    -----
    The Qbk channel of order n is |(2n+1)(an - bn)|^2/x^2, the backscattering
    of that order alone. Backscattering adds up coherently, so these channels
    do not sum to the total Qbk = |sum (2n+1)(-1)^n (an - bn)|^2/x^2.
    '''
    an, bn = _check_coefficients(an, bn)
    x = float(x)
    if x <= 0:
        raise DomainError(f"Size parameter must be > 0, got {x}.")

    n = _np.arange(1, an.size + 1)
    qext = 2/x**2*(2*n + 1)*real(an + bn)
    qsca = 2/x**2*(2*n + 1)*(_np.abs(an)**2 + _np.abs(bn)**2)
    qabs = qext - qsca
    qbk = 1/x**2*_np.abs((2*n + 1)*(an - bn))**2
    qpr = qext - 4/x**2*_asymmetry_sum(an, bn)

    if normalize:
        weight = 2*(2*n + 1)/x**2
        return qext/weight, qsca/weight, qabs/weight, qbk/weight, qpr/weight

    return qext, qsca, qabs, qbk, qpr

def efficiencies(an, bn, x):
    '''
    Extinction, scattering, absorption, backscattering and radiation
    pressure efficiencies.

    Parameters
    ----------
    an, bn : 1D array-like
        mie coefficients (orders 1..nmax)
    x : float
        size parameter of the outer layer

    Returns
    -------
    Qext, Qsca, Qabs, Qbk, Qpr : float
    '''
    an, bn = _check_coefficients(an, bn)
    qext, qsca, qabs, _, qpr = channel_efficiencies(an, bn, x)

    n = _np.arange(1, an.size + 1)
    f = _np.sum((2*n + 1)*(-1)**n*(an - bn))
    qbk = _np.abs(f)**2/x**2

    return float(_np.sum(qext)), float(_np.sum(qsca)), float(_np.sum(qabs)), \
           float(qbk), float(_np.sum(qpr))

def _asymmetry_from_efficiencies(qext, qsca, qpr):
    if qsca == 0:
        raise DomainError("Asymmetry factor undefined: scattering efficiency is zero.")
    return (qext - qpr)/qsca

def _albedo_from_efficiencies(qext, qsca):
    if qext == 0:
        raise DomainError("Albedo undefined: extinction efficiency is zero.")
    return qsca/qext

def asymmetry_factor(an, bn, x):
    '''
    Asymmetry parameter g = <cos(theta)> = (Qext - Qpr)/Qsca
    '''
    qext, qsca, _, _, qpr = efficiencies(an, bn, x)
    return _asymmetry_from_efficiencies(qext, qsca, qpr)

def albedo(an, bn, x):
    '''
    Single scattering albedo Qsca/Qext
    '''
    qext, qsca, *_ = efficiencies(an, bn, x)
    return _albedo_from_efficiencies(qext, qsca)

def pi_tau(theta, nmax):
    """
    Angular functions pi_n(θ) = P_n^1(cos θ)/sin θ and
    tau_n(θ) = d/dθ P_n^1(cos θ) by upward recurrence (Bohren & Huffman,
    eqs. 4.47). The arrays start with n = 1.

    Parameters:
        theta (ndarray): scattering angles (radians)
        nmax (int): maximum order

    Returns:
        pi, tau (ndarray): shape (nmax, len(theta))
    """
    mu = _np.cos(_check_theta(theta))

    pi_n  = _np.zeros((nmax, len(mu)))
    tau_n = _np.zeros((nmax, len(mu)))

    pi_nm1 = _np.zeros_like(mu)     # pi_0
    pi_n[0] = 1
    tau_n[0] = mu
    for i in range(1, nmax):
        n = i + 1
        pi_n [i] = ((2*n - 1)*mu*pi_n[i - 1] - n*pi_nm1)/(n - 1)
        tau_n[i] = n*mu*pi_n[i] - (n + 1)*pi_n[i - 1]
        pi_nm1 = pi_n[i - 1]

    return pi_n, tau_n

def scattering_amplitudes(an, bn, theta):
    '''
    Elements S1 and S2 of the amplitude scattering matrix (S3 = S4 = 0 for
    spheres).

    Parameters
    ----------
    an, bn : 1D array-like
        mie coefficients (orders 1..nmax)
    theta : float or 1D array-like
        scattering angles (radians)

    Returns
    -------
    S1, S2 : 1D numpy arrays (size len(theta))
    '''
    an, bn = _check_coefficients(an, bn)
    nmax = an.size
    pi_n, tau_n = pi_tau(theta, nmax)

    # set scale for summation
    n = _np.arange(1, nmax + 1)
    scale = (2*n + 1)/(n*(n + 1))

    S1 = (scale*an) @ pi_n + (scale*bn) @ tau_n
    S2 = (scale*an) @ tau_n + (scale*bn) @ pi_n
    return S1, S2

def scattering_patterns(s1, s2, x):
    '''
    Differential scattering efficiencies normalized by pi*x^2, so that the
    unpolarized pattern integrated over 4*pi equals Qsca.

    Returns
    -------
    ek : incident E in the scattering plane, |S2|^2/(pi x^2)
    hk : incident H in the scattering plane, |S1|^2/(pi x^2)
    unpolarized : (ek + hk)/2
    '''
    scale = pi*float(x)**2
    ek = _np.abs(s2)**2/scale
    hk = _np.abs(s1)**2/scale
    return ek, hk, (ek + hk)/2

#--------------------------------------------------------------------------
#   Wavelength array interface (diameters in microns, host refractive index)
#--------------------------------------------------------------------------
def _size_parameter_set(lam, Nh, Np, D):
    m = (Np/Nh.real).transpose()    # relative index (nlam, nlayers)
    R = D/2                         # outer radius of each layer
    kh = 2*pi*Nh.real/lam           # wavector in the host
    x = _np.tensordot(kh, R, axes=0)  # size parameter (nlam, nlayers)
    return x, m

@_hide_signature
def scatter_coefficients(lam: _Union[float, _np.ndarray],
                         Nh: _Union[float, _np.ndarray],
                         Np: _Union[float, _np.ndarray, _List[_Union[float, _np.ndarray]]],
                         D: _Union[float, _List[float]],
                         *,
                         nmax: int = None,
                         check_inputs: bool = True):
    '''
    Compute mie scattering coefficients an and bn for multi-shell spherical
    object. Layers must be sorted from inner to outter diameter

    Parameters
    ----------
    lam : ndarray or float
        wavelengtgh (microns)

    Nh : ndarray or float
        Complex refractive index of host. If ndarray, its size must be equal to
        len(lam)

    Np : float, 1darray or list
        Complex refractive index of each shell layer. The number of elements
        must be equal to len(D). Options are:
            float:   solid sphere and constant refractive index
            1darray: solid sphere and spectral refractive index (length must match that of lam)
            list:    multilayered sphere (with both constant or spectral refractive indexes)

    D : float or list
        Outter diameter of each shell's layer (microns). Options are:
            float: solid sphere
            list:  multilayered sphere

    nmax: int, optional
        Cap on the number of mie scattering coefficients. Default None

    Returns
    -------
    an : ndarray (len(lam), nmax)
        Scatttering coefficient N function
    bn : ndarray (len(lam), nmax)
        Scattering coefficient M function
    '''
    # first check inputs and arrange them in np arrays
    if check_inputs:
        lam, Nh, Np, D = _check_mie_inputs(lam, Nh, Np, D)

    x, m = _size_parameter_set(lam, Nh, Np, D)

    # common number of terms for all wavelengths
    nmax = truncation_order(_np.max(x[:, -1]), nmax)

    # Preallocate outputs
    an = _np.zeros((len(lam), nmax), dtype=complex)
    bn = _np.zeros((len(lam), nmax), dtype=complex)
    for i in range(len(lam)):
        xi, mi = _check_layers(x[i, :], m[i, :])
        an[i, :], bn[i, :] = _layer_recursion(xi, mi, nmax)

    return an, bn

@_hide_signature
def scatter_efficiency(lam: _Union[float, _np.ndarray],
                       Nh: _Union[float, _np.ndarray],
                       Np: _Union[float, _np.ndarray, _List[_Union[float, _np.ndarray]]],
                       D: _Union[float, _List[float]],
                       *,
                       nmax: int = None,
                       as_ndarray: bool = False,
                       check_inputs: bool = True):
    '''
    Compute mie scattering efficiencies for multi-shell spherical particle.

    Parameters
    ----------
    lam : ndarray or float
        wavelength (microns)

    Nh : ndarray or float
        Complex refractive index of host. If ndarray, its size must be equal to
        len(lam)

    Np : float, 1darray or list
        Complex refractive index of each shell layer (see scatter_coefficients)

    D : float or list
        Outter diameter of each shell's layer (microns)

    nmax: int, optional
        Cap on the number of mie scattering coefficients. Default None

    as_ndarray : bool, optional
        True to return a (len(lam), 4) ndarray instead of a DataFrame

    Returns
    -------
    pandas.DataFrame
        columns Qext, Qsca, Qabs, Qbk indexed by wavelength
    '''
    # first check inputs and arrange them in np arrays
    if check_inputs:
        lam, Nh, Np, D = _check_mie_inputs(lam, Nh, Np, D)

    x, m = _size_parameter_set(lam, Nh, Np, D)

    # Preallocate outputs
    qeff = _np.zeros((len(lam), 4), dtype=float)
    for i in range(len(lam)):
        xi, mi = _check_layers(x[i, :], m[i, :])
        an, bn = _layer_recursion(xi, mi, truncation_order(xi[-1], nmax))
        qeff[i, :] = efficiencies(an, bn, xi[-1])[:4]

    if as_ndarray: return qeff

    return _pd.DataFrame(data=qeff,
                         index=_pd.Index(lam, name='Wavelength (um)'),
                         columns=['Qext', 'Qsca', 'Qabs', 'Qbk'])

@_hide_signature
def scatter_amplitude(lam: _Union[float, _np.ndarray],
                      Nh: _Union[float, _np.ndarray],
                      Np: _Union[float, _np.ndarray, _List[_Union[float, _np.ndarray]]],
                      D: _Union[float, _List[float]],
                      *,
                      theta: _Union[float, _np.ndarray] = None,
                      nmax: int = None,
                      check_inputs: bool = True):
    """
    Calculate the elements S1 (S11) and S2 (S22) of the scattering matrix for spheres.
    * For spheres S12 = S21 = 0

    Parameters:
        lam (ndarray or float): wavelengtgh (microns)

        Nh (ndarray or float): Complex refractive index of host. If
                                   ndarray, len = lam

        Np (float, 1darray or list): Complex refractive index of each
                                            shell layer (see scatter_coefficients)

        D (float or list): Outter diameter of each shell's layer (microns).

        theta (ndarray or float): Scattering angle (radians). Default None (0 to pi)

        nmax (int, optional): Cap on the number of mie scattering coefficients. Default None

        check_inputs (bool): True if user wants to check the inputs. Default True

    Returns:
        S1, S2: the scattering amplitudes, shape (len(theta), len(lam))
    """
    # first check inputs and arrange them in np arrays
    if check_inputs:
        lam, Nh, Np, D = _check_mie_inputs(lam, Nh, Np, D)

    # checks variable theta
    theta = _check_theta(theta)

    # Extract mie scattering coefficients
    an, bn = scatter_coefficients(lam, Nh, Np, D,
                                  nmax=nmax,
                                  check_inputs=False)

    S1 = _np.zeros((len(theta), len(lam)), dtype=_np.complex128)
    S2 = _np.zeros((len(theta), len(lam)), dtype=_np.complex128)
    for i in range(len(lam)):
        S1[:, i], S2[:, i] = scattering_amplitudes(an[i], bn[i], theta)

    return S1, S2

@_hide_signature
def phase_function(lam: _Union[float, _np.ndarray],
                   Nh: _Union[float, _np.ndarray],
                   Np: _Union[float, _np.ndarray, _List[_Union[float, _np.ndarray]]],
                   D: _Union[float, _List[float]],
                   *,
                   theta: _Union[float, _np.ndarray] = None,
                   nmax: int = None,
                   as_ndarray: bool = False,
                   check_inputs: bool = True):
    """
    Calculate the unpolarized scattering pattern of a single sphere. The
    intensity is normalized such that the integral over 4*pi is equal to qsca.

    Parameters:
        lam, Nh, Np, D, theta, nmax: see scatter_amplitude

        as_ndarray (bool): True if user wants the output as ndarray. Otherwise,
        the output is a pd.DataFrame. Default False

    Returns:
        phase_fun: the scattering phase function (as pd.DataFrame or ndarray)
    """
    # Organize D format
    if check_inputs:
        lam, Nh, Np, D = _check_mie_inputs(lam, Nh, Np, D)

    # checks variable theta
    theta = _check_theta(theta)

    # Get scattering amplitude elements S1 and S2
    s1, s2 = scatter_amplitude(lam, Nh, Np, D,
                               theta=theta,
                               nmax=nmax,
                               check_inputs=False)

    # size parameter of the outer layer
    x = pi*Nh.real*D[-1]/lam
    phase_fun = scattering_patterns(s1, s2, 1)[2]/x**2

    # return phase function as ndarray
    if as_ndarray: return phase_fun

    # if not convert phase function to dataframe
    df_phase_fun = _pd.DataFrame(data=phase_fun,
                                 index=_pd.Index(_np.degrees(theta),
                                                 name='Theta (deg)'),
                                 columns=lam)

    return df_phase_fun
