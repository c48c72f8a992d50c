# -*- coding: utf-8 -*-
"""
Near field of a multilayered sphere illuminated by the plane wave
E = x e^(ikz), H = y e^(ikz) (time dependence e^(-iwt)).

Fields are expanded in vector spherical harmonics (Bohren & Huffman,
eqs. 4.37-4.50). In layer l

    E = sum_n E_n [c M1_o1n - i d N1_e1n + i a N3_e1n - b M3_o1n]
    H = m_l sum_n E_n [-d M1_e1n - i c N1_o1n + a M3_e1n + i b N3_o1n]

with E_n = i^n (2n+1)/(n(n+1)) and radial functions of argument m_l*k*r.
In the host c = d = 1 (the incident wave) and a, b are the mie
coefficients.
Magnetic fields are normalized to the amplitude of the incident H.
"""
import numpy as _np
from numpy import sin, cos
from .errors import DomainError
from .coefficients import _check_layers, _layer_extent, _layer_indices, _scaled_expansion
from .miescattering import pi_tau, _check_coefficients
from .special import riccati_bessel

def _vswf(n, rho, zn, dzn, pin, taun, theta, phi):
    '''
    Vector spherical harmonics M_o1n, M_e1n, N_o1n, N_e1n as (3, nmax)
    arrays of spherical components (r, theta, phi).

    zn is the radial function z_n(rho) and dzn = [rho*z_n(rho)]'/rho
    '''
    cosp, sinp, sint = cos(phi), sin(phi), sin(theta)
    zero = _np.zeros_like(zn)
    nn1 = n*(n + 1)

    Mo = _np.array([zero,  cosp*pin*zn, -sinp*taun*zn])
    Me = _np.array([zero, -sinp*pin*zn, -cosp*taun*zn])
    No = _np.array([sinp*nn1*sint*pin*zn/rho, sinp*taun*dzn,  cosp*pin*dzn])
    Ne = _np.array([cosp*nn1*sint*pin*zn/rho, cosp*taun*dzn, -sinp*pin*dzn])
    return Mo, Me, No, Ne

def _spherical_to_cartesian(v, theta, phi):
    '''
    Convert a vector with spherical components (r, theta, phi) at the point
    (theta, phi) to cartesian components
    '''
    st, ct, sp, cp = sin(theta), cos(theta), sin(phi), cos(phi)
    rot = _np.array([[st*cp, ct*cp, -sp],
                     [st*sp, ct*sp,  cp],
                     [ct,    -st,    0.]])
    return rot @ v

def near_field(points_sp, x, m, an, bn, *, pec=False, **kwargs):
    '''
    Electric and magnetic fields at arbitrary points.

    The incident wave is expanded with the same number of terms as the
    scattered and internal fields (c = d = 1 in the host), so the total field
    is the truncated series everywhere and tangential components are
    continuous across every boundary. Points far from the sphere
    (k*r >> nmax) are therefore not reproduced by the series.

    Points on a boundary are evaluated with the expansion of the layer
    outside the boundary (one-sided limit).

    Parameters
    ----------
    points_sp : (npoints, 3) array-like
        cartesian coordinates in size parameter units (k*x, k*y, k*z)
    x : 1D array-like
        size parameter of each boundary (innermost first)
    m : 1D array-like
        refractive index of each layer relative to the host
    an, bn : 1D array-like
        mie coefficients (orders 1..nmax); the expansion uses the same nmax
    pec : bool, optional
        True if the innermost layer is a perfect electric conductor

    Returns
    -------
    E, H : (npoints, 3) complex numpy arrays
    '''
    x, m = _check_layers(x, m, pec)
    an, bn = _check_coefficients(an, bn)
    points = _np.asarray(points_sp, dtype=float).reshape(-1, 3)
    if not _np.all(_np.isfinite(points)):
        raise DomainError("Field points must be finite.")

    r = _np.linalg.norm(points, axis=1)
    if _np.any(r == 0):
        raise DomainError("Fields cannot be evaluated at the origin.")

    nmax = an.size
    n = _np.arange(1, nmax + 1)
    En = 1j**n*(2*n + 1)/(n*(n + 1))

    # coefficients of the scaled radial functions
    aln, bln, cln, dln = _scaled_expansion(x, m, an, bn, pec, **kwargs)
    ml = _layer_indices(m, pec)
    xin, xout = _layer_extent(x)
    beta = ml.imag

    theta = _np.arccos(_np.clip(points[:, 2]/r, -1, 1))
    phi = _np.arctan2(points[:, 1], points[:, 0])
    layer = _np.searchsorted(x, r, side='right')

    E = _np.zeros((len(points), 3), dtype=complex)
    H = _np.zeros((len(points), 3), dtype=complex)
    for ip in range(len(points)):
        lay = layer[ip]

        # no field inside a perfect conductor
        if pec and lay == 0:
            continue

        rho = ml[lay]*r[ip]
        psi, xi, dpsi, dxi = [f[1:] for f in riccati_bessel(rho, nmax, scaled=True, **kwargs)]
        pin, taun = [f[:, 0] for f in pi_tau(theta[ip], nmax)]
        wc = _np.exp(abs(beta[lay])*(r[ip] - xout[lay]))
        wb = _np.exp(-beta[lay]*(r[ip] - xin[lay]))

        Esph = _np.zeros(3, dtype=complex)
        Hsph = _np.zeros(3, dtype=complex)

        # regular waves (the incident wave in the host)
        c, d = wc*cln[lay]*En, wc*dln[lay]*En
        Mo1, Me1, No1, Ne1 = _vswf(n, rho, psi/rho, dpsi/rho, pin, taun, theta[ip], phi[ip])
        Esph += Mo1 @ c - 1j*(Ne1 @ d)
        Hsph -= Me1 @ d + 1j*(No1 @ c)

        # outgoing waves (h1_n is singular at the origin, skip the core)
        if lay > 0:
            a, b = wb*aln[lay]*En, wb*bln[lay]*En
            Mo3, Me3, No3, Ne3 = _vswf(n, rho, xi/rho, dxi/rho, pin, taun, theta[ip], phi[ip])
            Esph += 1j*(Ne3 @ a) - Mo3 @ b
            Hsph += Me3 @ a + 1j*(No3 @ b)

        Hsph *= ml[lay]

        E[ip] = _spherical_to_cartesian(Esph, theta[ip], phi[ip])
        H[ip] = _spherical_to_cartesian(Hsph, theta[ip], phi[ip])

    return E, H
