"""Unit tests for filter dispatch in filters.py."""
import unittest

import numpy as np

from tests.base_test import BaseTestCase
import kernels
from engine_config import EngineConfig
from filters import FilterKind, apply_kernel, process_buffer, process_image, resolve_filter
from pixel_buffer import to_buffer


class TestResolveFilter(BaseTestCase):

    def test_accepts_kind_name_and_label(self):
        self.assertIs(resolve_filter(FilterKind.SHARPEN), FilterKind.SHARPEN)
        self.assertIs(resolve_filter('gaussian_blur'), FilterKind.GAUSSIAN_BLUR)
        self.assertIs(resolve_filter('GAUSSIAN BLUR'), FilterKind.GAUSSIAN_BLUR)
        self.assertIs(resolve_filter('red coloring'), FilterKind.RED_ISOLATE)
        self.assertIs(resolve_filter(' Edge-Detection '), FilterKind.EDGE_DETECTION)
        self.assertIs(resolve_filter('blue_isolate'), FilterKind.BLUE_ISOLATE)

    def test_unknown_identifiers(self):
        self.assertIsNone(resolve_filter('posterize'))
        self.assertIsNone(resolve_filter(None))
        self.assertIsNone(resolve_filter(3))

    def test_every_kind_has_a_label(self):
        self.assertEqual(len(FilterKind), 9)
        for kind in FilterKind:
            self.assertIs(resolve_filter(kind.value), kind)


class TestProcessImage(BaseTestCase):

    def test_unknown_filter_returns_input_unchanged(self):
        image = self.create_sample_rgb_image()
        with self.assertLogs('filters', level='WARNING'):
            self.assertIs(process_image(image, 'posterize'), image)

    def test_kernel_too_large_returns_none(self):
        image = self.create_sample_rgb_image(2, 2)
        with self.assertLogs('filters', level='ERROR'):
            self.assertIsNone(process_image(image, FilterKind.BOX_BLUR))

    def test_bands_shorter_than_kernel_return_partial_image(self):
        # 8 rows over 4 workers: the top and bottom 2-row bands sample outside the image
        image = self.create_sample_rgb_image(5, 8, color='white')
        with self.assertLogs('filters', level='WARNING') as logs:
            result = process_image(image, 'BOX BLUR')
        self.assertTrue(any('partial image' in line for line in logs.output))
        self.assertEqual(result.mode, 'RGBA')
        self.assertEqual(result.size, (5, 8))
        for y in (0, 1, 6, 7):
            self.assertEqual(result.getpixel((0, y)), (0, 0, 0, 0))

        expected = apply_kernel(to_buffer(image), 5, 8, kernels.BOX_BLUR, EngineConfig(strict=False))
        np.testing.assert_array_equal(to_buffer(result), expected)
        self.assertEqual(result.getpixel((2, 3))[3], 255)

    def test_red_isolate_on_white(self):
        image = self.create_sample_rgb_image(2, 2, color='white')
        result = process_image(image, 'RED COLORING')
        self.assertEqual(result.mode, 'RGBA')
        self.assertEqual(result.size, (2, 2))
        self.assertEqual(set(result.getdata()), {(255, 0, 0, 255)})

    def test_grayscale_rgb_image(self):
        image = self.create_sample_rgb_image(4, 5, color=(255, 0, 0))
        result = process_image(image, FilterKind.GRAYSCALE)
        self.assertEqual(set(result.getdata()), {(76, 76, 76, 255)})

    def test_source_image_is_not_modified(self):
        image = self.create_sample_rgba_image(12, 12, color=(10, 20, 30, 128))
        process_image(image, FilterKind.EDGE_DETECTION)
        self.assertEqual(image.getpixel((0, 0)), (10, 20, 30, 128))

    def test_kernel_filters_use_presets(self):
        image = self.create_sample_rgb_image(12, 12, color=(12, 140, 250))
        buffer = to_buffer(image)
        expected = apply_kernel(buffer, 12, 12, kernels.EMBOSS)
        result = process_image(image, 'emboss')
        np.testing.assert_array_equal(to_buffer(result), expected)


class TestProcessBuffer(BaseTestCase):

    def test_unknown_filter_copies_buffer(self):
        buffer = self.create_random_buffer(3, 3)
        result = process_buffer(buffer, 3, 3, 'posterize')
        self.assert_buffers_equal(result, buffer)
        self.assertIsNot(result, buffer)

    def test_channel_filters(self):
        buffer = self.create_solid_buffer(2, 2, [255, 30, 20, 10])
        self.assert_buffers_equal(process_buffer(buffer, 2, 2, FilterKind.BLUE_ISOLATE), [255, 30, 0, 0] * 4)
        self.assert_buffers_equal(process_buffer(buffer, 2, 2, FilterKind.GREEN_ISOLATE), [255, 0, 20, 0] * 4)
        self.assert_buffers_equal(process_buffer(buffer, 2, 2, FilterKind.RED_ISOLATE), [255, 0, 0, 10] * 4)

    def test_config_is_passed_through(self):
        buffer = self.create_solid_buffer(3, 6, [255, 255, 255, 255])
        config = EngineConfig(workers=4, partition='legacy')
        result = process_buffer(buffer, 3, 6, FilterKind.GRAYSCALE, config)
        # 6 // 4 = 1 row per band, rows 4 and 5 are left empty
        self.assertTrue((result[:4 * 3 * 4] == 255).all())
        self.assertTrue((result[4 * 3 * 4:] == 0).all())


if __name__ == '__main__':
    unittest.main()
