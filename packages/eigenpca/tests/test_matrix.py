"""Tests for eigenpca.matrix."""
import numpy as np
import pytest


class TestCovariancePipeline:

    def test_covariance(self, column_major_3x3):
        from eigenpca.matrix import covariance
        result = covariance(column_major_3x3)
        expected = 0.5 * column_major_3x3.T @ column_major_3x3
        np.testing.assert_array_equal(result, expected)

    def test_covariance_does_not_center(self):
        from eigenpca.matrix import covariance
        data = np.ones((4, 2))
        # Uncentered constant data still has a nonzero "covariance"
        np.testing.assert_allclose(covariance(data), np.full((2, 2), 4 / 3))

    def test_column_means(self, column_major_3x3):
        from eigenpca.matrix import column_means
        np.testing.assert_array_equal(column_means(column_major_3x3), [2, 5, 8])

    def test_remove_column_means(self, column_major_3x3):
        from eigenpca.matrix import column_means, remove_column_means
        data = column_major_3x3
        remove_column_means(data, column_means(data))
        expected = np.array([[-1, -1, -1], [0, 0, 0], [1, 1, 1]], dtype=float)
        np.testing.assert_array_equal(data, expected)

    def test_remove_column_means_wrong_length(self):
        from eigenpca.matrix import remove_column_means
        from eigenpca.errors import DimensionMismatchError
        with pytest.raises(DimensionMismatchError):
            remove_column_means(np.zeros((3, 3)), np.zeros(2))

    def test_column_rms(self, column_major_3x3):
        from eigenpca.matrix import column_rms
        expected = [np.sqrt(7), np.sqrt(38.5), np.sqrt(97)]
        np.testing.assert_allclose(column_rms(column_major_3x3), expected, rtol=1e-15)

    def test_normalize_by_column(self, column_major_3x3):
        from eigenpca.matrix import column_rms, normalize_by_column
        data = column_major_3x3
        normalize_by_column(data, column_rms(data))
        expected = np.array([
            [1, 4, 7],
            [2, 5, 8],
            [3, 6, 9],
        ]) / np.array([np.sqrt(7), np.sqrt(38.5), np.sqrt(97)])
        np.testing.assert_allclose(data, expected, atol=1e-7)

    def test_normalize_by_column_wrong_length(self):
        from eigenpca.matrix import normalize_by_column
        from eigenpca.errors import DimensionMismatchError
        with pytest.raises(DimensionMismatchError):
            normalize_by_column(np.ones((3, 3)), np.ones(2))

    def test_normalize_by_column_zero_scale(self):
        from eigenpca.matrix import normalize_by_column
        from eigenpca.errors import DegenerateValueError
        with pytest.raises(DegenerateValueError):
            normalize_by_column(np.ones((3, 3)), np.zeros(3))
        # Also catchable as the builtin
        with pytest.raises(ArithmeticError):
            normalize_by_column(np.ones((3, 3)), np.array([1.0, 0.0, 1.0]))


class TestSignConvention:

    def test_enforce_positive_sign(self):
        from eigenpca.matrix import enforce_positive_sign
        data = np.array([[1, 4, 7], [2, 5, 8], [3, -6, -9]], dtype=float)
        enforce_positive_sign(data)
        expected = np.array([[1, -4, -7], [2, -5, -8], [3, 6, 9]], dtype=float)
        np.testing.assert_array_equal(data, expected)

    def test_sign_flip_is_undone(self):
        from eigenpca.matrix import enforce_positive_sign
        rng = np.random.default_rng(0)
        q, _ = np.linalg.qr(rng.normal(size=(4, 4)))
        flipped = q * np.array([1, -1, -1, 1])
        enforce_positive_sign(q)
        enforce_positive_sign(flipped)
        np.testing.assert_array_equal(q, flipped)


class TestExtraction:

    def test_extract_column(self, column_major_3x3):
        from eigenpca.matrix import extract_column
        np.testing.assert_array_equal(extract_column(column_major_3x3, 1), [4, 5, 6])

    def test_extract_row(self, column_major_3x3):
        from eigenpca.matrix import extract_row
        np.testing.assert_array_equal(extract_row(column_major_3x3, 1), [2, 5, 8])

    def test_extract_returns_copy(self, column_major_3x3):
        from eigenpca.matrix import extract_column
        col = extract_column(column_major_3x3, 0)
        col[0] = 100
        assert column_major_3x3[0, 0] == 1

    @pytest.mark.parametrize('index', [3, -1])
    def test_out_of_range(self, index):
        from eigenpca.matrix import extract_column, extract_row
        from eigenpca.errors import RangeError
        data = np.zeros((3, 3))
        with pytest.raises(RangeError):
            extract_column(data, index)
        with pytest.raises(IndexError):
            extract_row(data, index)

    def test_shuffle_rows_with_replacement(self, column_major_3x3):
        from eigenpca.matrix import shuffle_rows_with_replacement
        result = shuffle_rows_with_replacement(column_major_3x3, np.random.default_rng(1))
        assert result.shape == column_major_3x3.shape
        original_rows = {tuple(r) for r in column_major_3x3}
        for row in result:
            assert tuple(row) in original_rows

    def test_shuffle_is_deterministic(self, random_records):
        from eigenpca.matrix import shuffle_rows_with_replacement
        a = shuffle_rows_with_replacement(random_records, np.random.default_rng(7))
        b = shuffle_rows_with_replacement(random_records, np.random.default_rng(7))
        np.testing.assert_array_equal(a, b)


class TestEquality:

    def test_is_approx_equal(self):
        from eigenpca.matrix import is_approx_equal
        assert is_approx_equal(1.0, 1.01, 0.02)
        assert not is_approx_equal(1.0, 1.02, 0.02)

    def test_is_approx_equal_default_eps(self):
        from eigenpca.matrix import is_approx_equal
        assert is_approx_equal(1.0, 1.0)
        assert not is_approx_equal(1.0, 1.0 + 1e-10)
        assert is_approx_equal(np.float32(1.0), np.float32(1.0) + np.float32(1e-8))

    def test_is_approx_equal_container(self):
        from eigenpca.matrix import is_approx_equal_container
        assert is_approx_equal_container([1, 2, 3], [1.01, 2, 3], 0.02)
        assert not is_approx_equal_container([1, 2, 3], [1.03, 2, 3], 0.02)
        assert not is_approx_equal_container([1, 2, 3], [1, 2], 0.02)

    def test_is_equal_container(self):
        from eigenpca.matrix import is_equal, is_equal_container
        assert is_equal_container([1, 2, 3], [1, 2, 3])
        assert not is_equal_container([1, 2, 3], [1, 2, 4])
        assert is_equal(2, 2.0)

    def test_get_mean_and_sigma(self):
        from eigenpca.matrix import get_mean, get_sigma
        assert get_mean([1, 2, 3]) == 2
        assert get_sigma([1, 2, 3]) == 1
        assert np.isnan(get_sigma([5.0]))


class TestSerialization:

    def test_round_trip_is_exact(self, tmp_path, random_records):
        from eigenpca.matrix import read_matrix, write_matrix
        path = tmp_path / "test_matrix"
        write_matrix(path, random_records)
        assert path.exists()
        np.testing.assert_array_equal(read_matrix(path), random_records)

    def test_no_suffix_appended(self, tmp_path):
        from eigenpca.matrix import write_matrix
        write_matrix(tmp_path / "run.eigval", np.ones(3))
        assert [p.name for p in tmp_path.iterdir()] == ["run.eigval"]

    def test_write_missing_directory(self, tmp_path):
        from eigenpca.matrix import write_matrix
        from eigenpca.errors import PersistenceIOError
        with pytest.raises(PersistenceIOError):
            write_matrix(tmp_path / "nada" / "test_matrix", np.eye(3))

    def test_read_missing_file(self, tmp_path):
        from eigenpca.matrix import read_matrix
        from eigenpca.errors import PersistenceIOError
        with pytest.raises(PersistenceIOError):
            read_matrix(tmp_path / "test_matrix")

    def test_read_garbage(self, tmp_path):
        from eigenpca.matrix import read_matrix
        from eigenpca.errors import PersistenceIOError
        path = tmp_path / "garbage"
        path.write_text("not a matrix")
        with pytest.raises(OSError):
            read_matrix(path)
        with pytest.raises(PersistenceIOError):
            read_matrix(path)
