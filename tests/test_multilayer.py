import warnings

import numpy as np
import pandas as pd
import pytest

from layermie import MultiLayerMie, MieOptions
from layermie.errors import DomainError
from layermie.coefficients import mie_coefficients
from layermie.miescattering import efficiencies, asymmetry_factor, albedo


@pytest.fixture
def coated():
    mie = MultiLayerMie()
    mie.set_wavelength(500)
    mie.add_target_layer(100, 1.5 + 0.01j)
    mie.add_coating_layer(50, 1.33)
    return mie


class TestCoatedSphere(object):

    def test_efficiencies(self, coated):
        assert coated.get_qsca() > 0
        assert coated.get_qabs() >= 0
        assert -1 < coated.get_asymmetry_factor() < 1
        assert coated.get_qext() == pytest.approx(coated.get_qsca() + coated.get_qabs())
        assert 0 < coated.get_albedo() <= 1

    def test_derived_quantities_match_functional_api(self, coated):
        x = 2*np.pi*np.array([100, 150])/500
        an, bn = mie_coefficients(x, [1.5 + 0.01j, 1.33])
        assert coated.get_asymmetry_factor() == pytest.approx(asymmetry_factor(an, bn, x[-1]))
        assert coated.get_albedo() == pytest.approx(albedo(an, bn, x[-1]))

    def test_matches_size_parameter_calculation(self, coated):
        x = 2*np.pi*np.array([100, 150])/500
        an, bn = mie_coefficients(x, [1.5 + 0.01j, 1.33])
        np.testing.assert_allclose(coated.get_an(), an)
        np.testing.assert_allclose(coated.get_bn(), bn)
        assert coated.get_max_terms_used() == an.size
        assert coated.get_qbk() == pytest.approx(efficiencies(an, bn, x[-1])[3])
        assert coated.get_qpr() == pytest.approx(efficiencies(an, bn, x[-1])[4])

    def test_geometry(self, coated):
        assert coated.get_target_radius() == pytest.approx(100)
        assert coated.get_coating_width() == pytest.approx(50)
        assert coated.get_total_radius() == pytest.approx(150)
        np.testing.assert_allclose(coated.get_layer_width_sp(), 2*np.pi*np.array([100, 50])/500)
        np.testing.assert_allclose(coated.get_layer_index(), [1.5 + 0.01j, 1.33])
        assert coated.get_target_layers_index() == [1.5 + 0.01j]
        assert coated.get_coating_layers_width() == [50]

    def test_cross_sections(self, coated):
        area = np.pi*150**2
        assert coated.get_rcs_ext() == pytest.approx(coated.get_qext()*area)
        assert coated.get_rcs_sca() == pytest.approx(coated.get_qsca()*area)
        assert coated.get_rcs_abs() == pytest.approx(coated.get_qabs()*area)
        assert coated.get_rcs_bk() == pytest.approx(coated.get_qbk()*area)

    def test_channels(self, coated):
        nmax = coated.get_max_terms_used()
        assert coated.get_qsca_channel().shape == (nmax,)
        assert np.sum(coated.get_qext_channel()) == pytest.approx(coated.get_qext())
        assert np.sum(coated.get_qabs_channel()) == pytest.approx(coated.get_qabs())
        assert np.sum(coated.get_qpr_channel()) == pytest.approx(coated.get_qpr())
        assert np.all(coated.get_qsca_channel(normalized=True) <= 2)
        assert coated.get_qbk_channel().shape == (nmax,)


class TestCache(object):

    def test_changes_invalidate(self, coated):
        qsca = coated.get_qsca()
        coated.set_wavelength(600)
        assert coated.get_qsca() != pytest.approx(qsca)

        qsca = coated.get_qsca()
        coated.add_coating_layer(10, 1.4)
        assert coated.get_qsca() != pytest.approx(qsca)

        qsca = coated.get_qsca()
        coated.clear_coating()
        coated.add_coating_layer(50, 1.33)
        coated.add_coating_layer(10, 1.4)
        assert coated.get_qsca() == pytest.approx(qsca)

    def test_results_are_copies(self, coated):
        an = coated.get_an()
        an[:] = 0
        assert np.all(coated.get_an() != 0)

    def test_max_terms(self, coated):
        nmax = coated.get_max_terms_used()
        coated.set_max_terms_number(nmax + 10)
        assert coated.get_max_terms_used() == nmax

        with pytest.warns(RuntimeWarning):
            coated.set_max_terms_number(2)
            assert coated.get_max_terms_used() == 2

        coated.set_max_terms_number(None)
        assert coated.get_max_terms_used() == nmax

    def test_options(self):
        with pytest.raises(DomainError):
            MieOptions(nmax=0)
        with pytest.raises(DomainError):
            MieOptions(max_iter=0)

        mie = MultiLayerMie(MieOptions(eps2=1e-12))
        mie.add_target_layer(1.0, 1.5)
        reference = MultiLayerMie()
        reference.add_target_layer(1.0, 1.5)
        np.testing.assert_allclose(mie.get_an(), reference.get_an(), rtol=1e-10)


class TestSizeParameterDesign(object):

    def test_equivalent_to_applied_design(self, coated):
        mie = MultiLayerMie()
        mie.set_wavelength(500)
        mie.set_width_sp(2*np.pi*np.array([100, 50])/500)
        mie.set_index_sp([1.5 + 0.01j, 1.33])
        assert mie.get_qsca() == pytest.approx(coated.get_qsca())
        np.testing.assert_allclose(mie.get_target_layers_width(), [100, 50])
        assert mie.get_target_radius() == pytest.approx(150)

    def test_replaces_applied_design(self, coated):
        coated.set_width_sp([1.0])
        coated.set_index_sp([2.0])
        assert coated.get_coating_layers_width() == []
        np.testing.assert_allclose(coated.get_layer_index(), [2.0])

        coated.add_target_layer(100, 1.5)
        assert coated.get_target_layers_width() == [100]

    def test_mismatch(self):
        mie = MultiLayerMie()
        mie.set_width_sp([1.0, 0.5])
        mie.set_index_sp([1.5])
        with pytest.raises(DomainError):
            mie.get_qext()

    def test_spectra_sp(self, coated):
        df = coated.get_spectra_sp(1.0, 3.0, 5)
        assert list(df.columns) == ['Qext', 'Qsca', 'Qabs', 'Qbk']
        assert df.shape == (5, 4)
        assert np.all(df['Qsca'] > 0)

        x = 2*np.pi*150/500

        arr = coated.get_spectra_sp(x, x, 1, as_ndarray=True)
        assert arr.shape == (1, 5)
        assert arr[0, 2] == pytest.approx(coated.get_qsca())


class TestSpectra(object):

    def test_dataframe(self, coated):
        df = coated.get_spectra(400, 800, 9)
        assert isinstance(df, pd.DataFrame)
        assert df.shape == (9, 4)
        np.testing.assert_allclose(df['Qext'], df['Qsca'] + df['Qabs'])
        assert df.loc[500, 'Qsca'] == pytest.approx(coated.get_qsca())

    def test_ndarray(self, coated):
        arr = coated.get_spectra(400, 800, 3, as_ndarray=True)
        np.testing.assert_allclose(arr[:, 0], [400, 600, 800])

    def test_dispersive_index(self):
        mie = MultiLayerMie()
        mie.add_target_layer(100, lambda lam: 1.4 + lam/5000)
        df = mie.get_spectra(400, 600, 3)

        for lam in [400, 500, 600]:
            an, bn = mie_coefficients([2*np.pi*100/lam], [1.4 + lam/5000])
            assert df.loc[lam, 'Qext'] == pytest.approx(efficiencies(an, bn, 2*np.pi*100/lam)[0])

    def test_invalid_sweep(self, coated):
        with pytest.raises(DomainError):
            coated.get_spectra(400, 800, 0)
        with pytest.raises(DomainError):
            coated.get_spectra(-100, 800, 3)


class TestAngles(object):

    def test_patterns(self, coated):
        coated.set_angles_for_pattern(0, np.pi, 91)
        angles = coated.get_angles()
        assert angles.size == 91
        s1, s2 = coated.get_s1(), coated.get_s2()
        assert s1[0] == pytest.approx(s2[0])

        x = 2*np.pi*150/500
        np.testing.assert_allclose(coated.get_pattern_ek(), np.abs(s2)**2/(np.pi*x**2))
        np.testing.assert_allclose(coated.get_pattern_hk(), np.abs(s1)**2/(np.pi*x**2))
        np.testing.assert_allclose(coated.get_pattern_unpolarized_sp(),
                                   coated.get_pattern_unpolarized())

    def test_no_angles(self, coated):
        with pytest.raises(DomainError):
            coated.get_s1()

    def test_invalid_samples(self, coated):
        with pytest.raises(DomainError):
            coated.set_angles_for_pattern(0, np.pi, 0)


class TestFields(object):

    def test_origin(self, coated):
        coated.set_field_points([[0, 0, 0]])
        with pytest.raises(DomainError):
            coated.get_field_e()

    def test_no_points(self, coated):
        with pytest.raises(DomainError):
            coated.get_field_h()

    def test_point_units(self, coated):
        coated.set_field_points([[0, 0, 250]])
        np.testing.assert_allclose(coated.get_field_points_sp(), [[0, 0, np.pi]])
        E = coated.get_field_e()

        coated.set_field_points_sp([[0, 0, np.pi]])
        np.testing.assert_allclose(coated.get_field_points(), [[0, 0, 250]])
        np.testing.assert_allclose(coated.get_field_e(), E)

    def test_small_particle_barely_perturbs_incident_wave(self):
        mie = MultiLayerMie()
        mie.set_wavelength(1.0)
        mie.add_target_layer(1e-3, 1.5)
        mie.set_field_points_sp([[0, 0, 0.1]])
        E = mie.get_field_e()[0]
        H = mie.get_field_h()[0]
        np.testing.assert_allclose(E, [np.exp(0.1j), 0, 0], atol=1e-3)
        np.testing.assert_allclose(H, [0, np.exp(0.1j), 0], atol=1e-3)


class TestPEC(object):

    def test_pec_target(self):
        mie = MultiLayerMie()
        mie.set_target_pec(1.0)
        an, bn = mie.get_an(), mie.get_bn()
        assert mie.get_qabs() == pytest.approx(0, abs=1e-12)
        assert mie.get_qsca() > 0

        mie.add_coating_layer(0.1, 1.0)
        np.testing.assert_allclose(mie.get_an()[:an.size], an, rtol=1e-8, atol=1e-14)
        np.testing.assert_allclose(mie.get_bn()[:bn.size], bn, rtol=1e-8, atol=1e-14)

    def test_pec_fields_vanish_inside(self):
        mie = MultiLayerMie()
        mie.set_target_pec(1.0)
        mie.add_coating_layer(0.5, 1.5)
        mie.set_field_points([[0.1, 0.2, 0.3]])
        np.testing.assert_allclose(mie.get_field_e(), 0)

    def test_set_pec(self):
        mie = MultiLayerMie()
        mie.add_target_layer(1.0, 1.5)
        mie.set_pec(0)
        qsca = mie.get_qsca()

        reference = MultiLayerMie()
        reference.set_target_pec(1.0)
        assert qsca == pytest.approx(reference.get_qsca())

        with pytest.raises(DomainError):
            mie.set_pec(1)

    def test_clear_target_resets_pec(self):
        mie = MultiLayerMie()
        mie.set_target_pec(1.0)
        mie.clear_target()
        mie.add_target_layer(1.0, 1.0)
        assert mie.get_qsca() == pytest.approx(0, abs=1e-20)


class TestErrors(object):

    def test_empty_design(self):
        with pytest.raises(DomainError):
            MultiLayerMie().get_qext()

    def test_negative_width(self):
        mie = MultiLayerMie()
        with pytest.raises(DomainError):
            mie.add_target_layer(-1.0, 1.5)

    def test_zero_width(self):
        mie = MultiLayerMie()
        mie.add_target_layer(1.0, 1.5)
        mie.add_coating_layer(0.0, 1.3)
        with pytest.raises(DomainError):
            mie.get_qext()

    def test_width_index_mismatch(self):
        mie = MultiLayerMie()
        mie.set_target_width([1.0, 2.0])
        mie.set_target_index([1.5])
        with pytest.raises(DomainError):
            mie.get_qsca()

    def test_invalid_wavelength(self):
        with pytest.raises(DomainError):
            MultiLayerMie().set_wavelength(0)

    def test_zero_index(self):
        mie = MultiLayerMie()
        mie.add_target_layer(1.0, 0)
        with pytest.raises(DomainError):
            mie.get_qext()

    def test_no_warnings_by_default(self, coated):
        with warnings.catch_warnings():
            warnings.simplefilter('error')
            coated.get_qext()
