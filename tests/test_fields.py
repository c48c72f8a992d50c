import numpy as np
import pytest

from layermie.errors import DomainError
from layermie.coefficients import mie_coefficients
from layermie.fields import near_field
from conftest import tangential, point_at


def fields_across(r, x, m, pec=False, theta=0.7, phi=0.3, eps=1e-9):
    """Fields just inside and just outside the sphere of radius r"""
    an, bn = mie_coefficients(x, m, pec=pec)
    p_in = point_at(r*(1 - eps), theta, phi)
    p_out = point_at(r*(1 + eps), theta, phi)
    E, H = near_field([p_in, p_out], x, m, an, bn, pec=pec)
    return E, H, p_out


class TestPlaneWave(object):

    def test_index_matched_sphere(self):
        x, m = [1.5, 3.0], [1.0, 1.0]
        an, bn = mie_coefficients(x, m)
        points = np.array([point_at(r, th, ph) for r, th, ph in
                           [(0.5, 0.3, 0.1), (1.2, 2.0, 1.0), (2.0, 1.1, -2.0),
                            (2.5, 0.5, 0.5), (2.8, 2.8, 3.0)]])
        E, H = near_field(points, x, m, an, bn)

        # the plane wave within the truncation of the series
        eikz = np.exp(1j*points[:, 2])
        np.testing.assert_allclose(E[:, 0], eikz, atol=1e-5)
        np.testing.assert_allclose(E[:, 1:], 0, atol=1e-5)
        np.testing.assert_allclose(H[:, 1], eikz, atol=1e-5)
        np.testing.assert_allclose(H[:, [0, 2]], 0, atol=1e-5)

    def test_near_small_sphere(self):
        # weak scatterer: the field close to it is close to the incident wave
        x, m = [0.05], [1.2]
        an, bn = mie_coefficients(x, m)
        point = point_at(0.5, 1.0, 0.2)
        E, _ = near_field([point], x, m, an, bn)
        assert E[0, 0] == pytest.approx(np.exp(1j*point[2]), abs=1e-3)


class TestBoundaries(object):

    @pytest.mark.parametrize('theta, phi', [(0.7, 0.3), (2.2, -1.4)])
    def test_continuity_at_inner_boundary(self, theta, phi):
        x, m = [2.0, 3.0], [1.5 + 0.1j, 1.33]
        E, H, p = fields_across(2.0, x, m, theta=theta, phi=phi)

        Et = tangential(E, p)
        Ht = tangential(H, p)
        np.testing.assert_allclose(Et[0], Et[1], rtol=1e-6, atol=1e-8)
        np.testing.assert_allclose(Ht[0], Ht[1], rtol=1e-6, atol=1e-8)

        # normal D is continuous
        rhat = p/np.linalg.norm(p)
        assert m[0]**2*(E[0] @ rhat) == pytest.approx(m[1]**2*(E[1] @ rhat), rel=1e-6, abs=1e-8)

    def test_continuity_at_outer_boundary(self):
        x, m = [1.0, 2.0, 4.0], [2.0 + 0.3j, 1.2, 1.6 + 0.01j]
        E, H, p = fields_across(4.0, x, m)

        np.testing.assert_allclose(tangential(E, p)[0], tangential(E, p)[1], rtol=1e-6, atol=1e-8)
        np.testing.assert_allclose(tangential(H, p)[0], tangential(H, p)[1], rtol=1e-6, atol=1e-8)

    def test_point_on_boundary_uses_outer_layer(self):
        x, m = [2.0, 3.0], [1.5, 1.33]
        an, bn = mie_coefficients(x, m)
        p = np.array([2.0, 0.0, 0.0])
        E_on, _ = near_field([p], x, m, an, bn)
        E_out, _ = near_field([p*(1 + 1e-12)], x, m, an, bn)
        np.testing.assert_allclose(E_on, E_out, rtol=1e-8, atol=1e-10)

    def test_continuity_where_shell_argument_is_multiple_of_pi(self):
        x, m = [2*np.pi/1.5, 5.0], [2.0 + 0.1j, 1.5]
        E, H, p = fields_across(x[0], x, m)
        assert np.all(np.isfinite(E)) and np.all(np.isfinite(H))
        np.testing.assert_allclose(tangential(E, p)[0], tangential(E, p)[1], rtol=1e-6, atol=1e-8)
        np.testing.assert_allclose(tangential(H, p)[0], tangential(H, p)[1], rtol=1e-6, atol=1e-8)


class TestAbsorbingSphere(object):

    x, m = [80.0], [0.3 + 10j]

    def test_fields_are_finite(self):
        an, bn = mie_coefficients(self.x, self.m)
        E, H = near_field([[0, 0, 79.99], [0, 0, 40.0]], self.x, self.m, an, bn)
        assert np.all(np.isfinite(E))
        assert np.all(np.isfinite(H))

        # the field decays as exp(-Im(m) depth) below the surface
        assert np.linalg.norm(E[0]) > 1e-3
        assert np.linalg.norm(E[1]) < 1e-100

    def test_continuity_at_surface(self):
        E, H, p = fields_across(self.x[0], self.x, self.m, eps=1e-10)
        assert np.all(np.isfinite(E)) and np.all(np.isfinite(H))
        np.testing.assert_allclose(tangential(E, p)[0], tangential(E, p)[1], rtol=1e-6, atol=1e-8)
        np.testing.assert_allclose(tangential(H, p)[0], tangential(H, p)[1], rtol=1e-6, atol=1e-8)


class TestPEC(object):

    def test_tangential_field_vanishes_on_conductor(self):
        E, H, p = fields_across(2.0, [2.0], [0], pec=True)
        np.testing.assert_allclose(tangential(E, p)[1], 0, atol=1e-7)

    def test_conductor_radius_multiple_of_pi(self):
        x = [2*np.pi, 2*np.pi + 0.6]
        E, H, p = fields_across(x[0], x, [0, 1.0], pec=True)
        assert np.all(np.isfinite(E))
        np.testing.assert_allclose(tangential(E, p)[1], 0, atol=1e-7)

    def test_no_field_inside_conductor(self):
        x, m = [1.0, 2.0], [0, 1.5]
        an, bn = mie_coefficients(x, m, pec=True)
        E, H = near_field([point_at(0.5)], x, m, an, bn, pec=True)
        np.testing.assert_array_equal(E, 0)
        np.testing.assert_array_equal(H, 0)

    def test_coated_conductor_continuity(self):
        E, H, p = fields_across(1.0, [1.0, 2.0], [0, 1.5], pec=True)
        assert np.all(np.abs(tangential(E, p)[1]) < 1e-7)


class TestErrors(object):

    def test_origin(self):
        an, bn = mie_coefficients([1.0], [1.5])
        with pytest.raises(DomainError):
            near_field([[0, 0, 0]], [1.0], [1.5], an, bn)

    def test_origin_among_points(self):
        an, bn = mie_coefficients([1.0], [1.5])
        with pytest.raises(DomainError):
            near_field([[1, 0, 0], [0, 0, 0]], [1.0], [1.5], an, bn)

    def test_non_finite_point(self):
        an, bn = mie_coefficients([1.0], [1.5])
        with pytest.raises(DomainError):
            near_field([[np.nan, 0, 0]], [1.0], [1.5], an, bn)

    def test_output_shape(self):
        an, bn = mie_coefficients([1.0], [1.5])
        E, H = near_field(np.ones((4, 3)), [1.0], [1.5], an, bn)
        assert E.shape == (4, 3)
        assert H.shape == (4, 3)
