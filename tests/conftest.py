"""
Pytest configuration for layermie tests
"""

import numpy as np
import pytest
from scipy.special import spherical_jn, spherical_yn


@pytest.fixture
def rtol():
    """Relative tolerance for comparisons against closed-form results"""
    return 1e-8


@pytest.fixture
def atol():
    """Absolute tolerance for comparisons against closed-form results"""
    return 1e-12


def riccati_reference(z, nmax):
    """
    psi_n, xi_n and derivatives (n = 1..nmax) from scipy spherical Bessel
    functions
    """
    n = np.arange(1, nmax + 1)
    jn = spherical_jn(n, z)
    jnp = spherical_jn(n, z, derivative=True)
    yn = spherical_yn(n, z)
    ynp = spherical_yn(n, z, derivative=True)
    psi = z*jn
    dpsi = jn + z*jnp
    xi = z*(jn + 1j*yn)
    dxi = (jn + 1j*yn) + z*(jnp + 1j*ynp)
    return psi, dpsi, xi, dxi


def mie_reference(x, m, nmax):
    """
    Mie coefficients of a homogeneous sphere (Bohren & Huffman, eq. 4.56)
    """
    psi, dpsi, xi, dxi = riccati_reference(x, nmax)
    psim, dpsim, _, _ = riccati_reference(m*x, nmax)
    an = (m*psim*dpsi - psi*dpsim)/(m*psim*dxi - xi*dpsim)
    bn = (psim*dpsi - m*psi*dpsim)/(psim*dxi - m*xi*dpsim)
    return an, bn


def internal_reference(x, m, nmax):
    """
    Internal field coefficients c_n, d_n of a homogeneous sphere
    (Bohren & Huffman, eq. 4.52)
    """
    psi, dpsi, xi, dxi = riccati_reference(x, nmax)
    psim, dpsim, _, _ = riccati_reference(m*x, nmax)
    cn = 1j*m/(psim*dxi - m*xi*dpsim)
    dn = 1j*m/(m*psim*dxi - xi*dpsim)
    return cn, dn


def tangential(v, point):
    """Component of the vectors v (npoints, 3) tangential to the sphere through point"""
    rhat = point/np.linalg.norm(point)
    return v - np.outer(v @ rhat, rhat)


def point_at(r, theta=0.7, phi=0.3):
    """Cartesian point at radius r in direction (theta, phi)"""
    return r*np.array([np.sin(theta)*np.cos(phi),
                       np.sin(theta)*np.sin(phi),
                       np.cos(theta)])
