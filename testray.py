import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout, redirect_stderr

import numpy as np
from PIL import Image as PIM

import cli
from ExampleSceneDef import SingleSphereExample, ThreeSpheresExample, EmptySceneExample
from geometry import Sphere, Hit, no_hit, intersect_ray_sphere, InvalidRay, InvalidScene, InvalidViewport
from ImLite import Image, Canvas, PixelBuffer
from tracer import *
from utils import vec, normalize, magnitude, dot, add, subtract, scale

WHITE = (255, 255, 255, 255)


def _ambient_scene(spheres, intensity=1.0, **kwargs):
    return Scene(spheres, [AmbientLight(intensity)], **kwargs)


class TestVectorMath(unittest.TestCase):

    def test_basic_ops(self):
        a = vec([1, 2, 3])
        b = vec([4, -5, 6])
        self.assertEqual(dot(a, b), 12.0)
        np.testing.assert_allclose(add(a, b), [5, -3, 9])
        np.testing.assert_allclose(subtract(a, b), [-3, 7, -3])
        np.testing.assert_allclose(scale(a, 2), [2, 4, 6])
        self.assertAlmostEqual(magnitude(vec([3, 4, 12])), 13.0)
        self.assertAlmostEqual(magnitude(normalize(b)), 1.0)


class TestSphereIntersect(unittest.TestCase):

    def test_symmetric_roots(self):
        # ray from (0,0,-2d) towards +z, d > r; closest approach at t = 2d
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, vec([255, 0, 0]))
        t1, t2 = intersect_ray_sphere(vec([0, 0, -4]), vec([0, 0, 1]), unit_sphere)
        self.assertEqual(sorted([t1, t2]), [3.0, 5.0])
        self.assertAlmostEqual((t1 + t2) / 2, 4.0)

    def test_nonunit_direction(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, vec([255, 0, 0]))
        roots = intersect_ray_sphere(vec([0, 0, -4]), vec([0, 0, 2]), unit_sphere)
        self.assertEqual(sorted(roots), [1.5, 2.5])

    def test_tangent(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, vec([255, 0, 0]))
        t1, t2 = intersect_ray_sphere(vec([0, 1, -4]), vec([0, 0, 1]), unit_sphere)
        self.assertAlmostEqual(t1, 4.0)
        self.assertAlmostEqual(t2, 4.0)

    def test_miss(self):
        unit_sphere = Sphere(vec([0, 0, 0]), 1.0, vec([255, 0, 0]))
        roots = intersect_ray_sphere(vec([0, 3, -4]), vec([0, 0, 1]), unit_sphere)
        self.assertEqual(roots, (np.inf, np.inf))

    def test_ray_method_matches_function(self):
        sphere = Sphere(vec([-1, -5, -7]), 3.0, vec([0, 255, 0]))
        ray = Ray(vec([5.0, -5.0, -7.0]), vec([-3.0, 0.0, 0.0]))
        self.assertEqual(sphere.intersect(ray), intersect_ray_sphere(ray.origin, ray.direction, sphere))
        self.assertEqual(sorted(sphere.intersect(ray)), [1.0, 3.0])

    def test_zero_direction_rejected(self):
        sphere = Sphere(vec([0, 0, 3]), 1.0, vec([255, 0, 0]))
        with self.assertRaises(InvalidRay):
            intersect_ray_sphere(vec([0, 0, 0]), vec([0, 0, 0]), sphere)

    def test_invalid_spheres(self):
        for radius in (0, -1, float('nan'), float('inf'), 'abc'):
            with self.assertRaises(InvalidScene):
                Sphere(vec([0, 0, 0]), radius, vec([255, 0, 0]))
        with self.assertRaises(InvalidScene):
            Sphere([0, 0], 1, vec([255, 0, 0]))
        with self.assertRaises(InvalidScene):
            Sphere(vec([0, 0, 0]), 1, [255, 0])


class TestCamera(unittest.TestCase):

    def test_canvas_to_viewport(self):
        cam = Camera()
        np.testing.assert_allclose(cam.canvas_to_viewport((0, 0), 100, 100), [0, 0, 1])
        cam = Camera(viewport=Viewport(2, 1, 3))
        np.testing.assert_allclose(cam.canvas_to_viewport((50, -25), 100, 100), [1, -0.25, 3])

    def test_generate_ray(self):
        eye = vec([1, 2, 3])
        cam = Camera(eye, Viewport(1, 1, 2))
        ray = cam.generate_ray((10, 20), 40, 40)
        np.testing.assert_allclose(ray.origin, eye)
        np.testing.assert_allclose(ray.direction, [0.25, 0.5, 2])
        self.assertEqual(ray.start, 0.)
        self.assertEqual(ray.end, np.inf)

    def test_invalid_viewport(self):
        with self.assertRaises(InvalidViewport):
            Viewport(1, 1, 0)
        with self.assertRaises(InvalidViewport):
            Viewport(1, 1, -2)
        with self.assertRaises(InvalidViewport):
            Viewport(0, 1, 1)


class TestNearestHit(unittest.TestCase):

    def setUp(self):
        self.near = Sphere(vec([0, 0, 5]), 1.0, vec([255, 0, 0]))
        self.far = Sphere(vec([0, 0, 10]), 1.0, vec([0, 0, 255]))
        self.origin = vec([0, 0, 0])
        self.direction = vec([0, 0, 1])

    def test_closest_sphere_wins_regardless_of_order(self):
        scene = _ambient_scene([self.far, self.near])
        color, hit = scene.trace_ray(self.origin, self.direction)
        np.testing.assert_allclose(color, [255, 0, 0])
        self.assertIs(hit.sphere, self.near)
        self.assertAlmostEqual(hit.t, 4.0)
        np.testing.assert_allclose(hit.point, [0, 0, 4])
        np.testing.assert_allclose(hit.normal, [0, 0, -1])

    def test_tie_goes_to_first_sphere(self):
        twin = Sphere(vec([0, 0, 5]), 1.0, vec([0, 255, 0]))
        color, hit = _ambient_scene([twin, self.near]).trace_ray(self.origin, self.direction)
        self.assertIs(hit.sphere, twin)
        np.testing.assert_allclose(color, [0, 255, 0])
        color, hit = _ambient_scene([self.near, twin]).trace_ray(self.origin, self.direction)
        self.assertIs(hit.sphere, self.near)

    def test_travel_window_is_closed(self):
        scene = _ambient_scene([self.near, self.far])
        _, hit = scene.trace_ray(self.origin, self.direction, 4.0, np.inf)
        self.assertEqual(hit.t, 4.0)
        _, hit = scene.trace_ray(self.origin, self.direction, 0.0, 4.0)
        self.assertEqual(hit.t, 4.0)
        # skipping the near root leaves the far side of the same sphere
        _, hit = scene.trace_ray(self.origin, self.direction, 4.5, np.inf)
        self.assertIs(hit.sphere, self.near)
        self.assertEqual(hit.t, 6.0)
        _, hit = scene.trace_ray(self.origin, self.direction, 6.5, np.inf)
        self.assertIs(hit.sphere, self.far)

    def test_roots_behind_origin_ignored(self):
        scene = _ambient_scene([self.near])
        _, hit = scene.trace_ray(vec([0, 0, 20]), self.direction)
        self.assertIs(hit, no_hit)

    def test_miss_returns_background(self):
        scene = _ambient_scene([self.near], bg_color=(10, 20, 30))
        color, hit = scene.trace_ray(self.origin, vec([0, 1, 0]))
        np.testing.assert_allclose(color, [10, 20, 30])
        self.assertIs(hit, no_hit)
        self.assertFalse(hit)

    def test_hit_is_truthy(self):
        self.assertTrue(Hit(1.0))
        self.assertFalse(Hit(np.inf))


class TestLighting(unittest.TestCase):

    def setUp(self):
        self.p = vec([0, 0, 0])
        self.n = vec([0, 1, 0])

    def test_no_lights(self):
        self.assertEqual(compute_lighting(self.p, self.n, []), 0.0)

    def test_ambient_sums(self):
        lights = [AmbientLight(0.25), AmbientLight(0.5)]
        self.assertAlmostEqual(compute_lighting(self.p, self.n, lights), 0.75)

    def test_point_diffuse(self):
        # light directly overhead
        self.assertAlmostEqual(compute_lighting(self.p, self.n, [PointLight(1.0, vec([0, 2, 0]))]), 1.0)
        # light at 60 degrees from the normal
        light = PointLight(1.0, vec([0, 1, np.sqrt(3)]))
        self.assertAlmostEqual(compute_lighting(self.p, self.n, [light]), 0.5)
        # intensity scales linearly, independent of distance
        light = PointLight(0.6, vec([0, 100, 0]))
        self.assertAlmostEqual(compute_lighting(self.p, self.n, [light]), 0.6)

    def test_point_back_face(self):
        self.assertEqual(compute_lighting(self.p, self.n, [PointLight(1.0, vec([0, -2, 0]))]), 0.0)
        self.assertEqual(compute_lighting(self.p, self.n, [PointLight(1.0, vec([3, 0, 0]))]), 0.0)

    def test_point_light_behind_sphere(self):
        sphere = Sphere(vec([0, 0, 3]), 1.0, vec([255, 255, 255]))
        point = vec([0, 0, 2])
        normal = sphere.normal_at(point)
        np.testing.assert_allclose(normal, [0, 0, -1])
        lights = [PointLight(1.0, vec([0, 0, 10])), AmbientLight(0.1)]
        self.assertAlmostEqual(compute_lighting(point, normal, lights), 0.1)

    def test_directional(self):
        self.assertAlmostEqual(compute_lighting(self.p, self.n, [DirectionalLight(0.5, vec([0, 1, 0]))]), 0.5)
        self.assertEqual(compute_lighting(self.p, self.n, [DirectionalLight(0.5, vec([0, -1, 0]))]), 0.0)
        light = DirectionalLight(1.0, vec([1, 1, 0]))
        self.assertAlmostEqual(compute_lighting(self.p, self.n, [light]), 1 / np.sqrt(2))
        # not affected by where the surface point is
        self.assertAlmostEqual(compute_lighting(vec([50, -7, 3]), self.n, [light]), 1 / np.sqrt(2))

    def test_mixed(self):
        lights = [AmbientLight(0.2), PointLight(0.6, vec([0, 2, 0])), DirectionalLight(0.2, vec([0, 1, 0]))]
        self.assertAlmostEqual(compute_lighting(self.p, self.n, lights), 1.0)

    def test_unknown_kind(self):
        class SpotLight:
            kind = 'spot'
            intensity = 1.0
        with self.assertRaises(InvalidScene):
            compute_lighting(self.p, self.n, [SpotLight()])

    def test_lighting_scales_sphere_color(self):
        sphere = Sphere(vec([0, 0, 5]), 1.0, vec([200, 100, 50]))
        scene = Scene([sphere], [AmbientLight(0.5), DirectionalLight(0.25, vec([0, 0, -1]))])
        color, _ = scene.trace_ray(vec([0, 0, 0]), vec([0, 0, 1]))
        np.testing.assert_allclose(color, [150, 75, 37.5])


class TestClamp(unittest.TestCase):

    def test_range(self):
        np.testing.assert_allclose(clamp([-10, 128.5, 300]), [0, 128.5, 255])

    def test_idempotent(self):
        rng = np.random.default_rng(4620)
        for v in rng.uniform(-1000, 1000, size=(50, 3)):
            once = clamp(v)
            np.testing.assert_array_equal(clamp(once), once)
            self.assertTrue(np.all(once >= 0) and np.all(once <= 255))


class TestPixelWriter(unittest.TestCase):

    def setUp(self):
        self.canvas = Canvas(4, 4)
        self.renderer = Renderer(EmptySceneExample().scene, Camera(), self.canvas)
        self.buffer = self.renderer.buffer

    def test_buffer_layout(self):
        self.assertIsInstance(self.buffer, PixelBuffer)
        self.assertEqual(self.buffer.pitch, 16)
        self.assertEqual(self.buffer.data.shape, (64,))
        self.assertEqual(self.buffer.data.dtype, np.uint8)

    def test_paint_center(self):
        self.renderer.paint_pixel(0, 0, vec([10, 20, 30]))
        # (0, 0) lands at device column 2, row 1
        self.assertEqual(self.buffer.getPixel(2, 1), (10, 20, 30, 255))
        offset = 4 * 2 + self.buffer.pitch * 1
        self.assertEqual(list(self.buffer.data[offset:offset + 4]), [10, 20, 30, 255])
        self.assertEqual(int(np.count_nonzero(self.buffer.data)), 4)

    def test_rounds_channels(self):
        self.renderer.paint_pixel(-2, 1, vec([0.4, 254.6, 127.6]))
        self.assertEqual(self.buffer.getPixel(0, 0), (0, 255, 128, 255))

    def test_out_of_bounds_dropped(self):
        for x, y in [(2, 0), (-3, 0), (0, 2), (0, -3), (100, 100)]:
            self.renderer.paint_pixel(x, y, vec([255, 255, 255]))
        self.assertEqual(int(np.count_nonzero(self.buffer.data)), 0)

    def test_coordinate_mapping(self):
        w, h = self.canvas.width, self.canvas.height
        for py in range(h):
            for px in range(w):
                x = px - w // 2
                y = h // 2 - py - 1
                self.assertEqual(self.renderer.device_coords(x, y), (px, py))


class TestImage(unittest.TestCase):

    def test_pixels_round_trip(self):
        data = np.zeros((2, 3, 4), dtype=np.uint8)
        im = Image(pixels=data)
        self.assertIs(im.pixels, data)
        self.assertEqual((im.width, im.height), (3, 2))
        replacement = np.full((4, 5, 4), 7, dtype=np.uint8)
        im.pixels = replacement
        self.assertIs(im.pixels, replacement)
        self.assertEqual(im.getPixel(4, 3), (7, 7, 7, 7))
        # a bare array in the path slot is taken as pixels
        self.assertIs(Image(data).pixels, data)


class TestRender(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        # 100x100, red sphere at z=3 with radius 1, ambient intensity 1
        cls.image = SingleSphereExample().render(output_shape=[100, 100])

    def test_center_is_red(self):
        self.assertEqual(self.image.getPixel(50, 49), (255, 0, 0, 255))
        self.assertEqual(self.image.getPixel(50, 50), (255, 0, 0, 255))

    def test_corners_are_background(self):
        for x, y in [(0, 0), (99, 0), (0, 99), (99, 99)]:
            self.assertEqual(self.image.getPixel(x, y), WHITE)

    def test_fully_opaque(self):
        np.testing.assert_array_equal(self.image.pixels[:, :, 3], 255)
        self.assertEqual(tuple(self.image.shape), (100, 100, 4))

    def test_ambient_scaling(self):
        im = SingleSphereExample(intensity=0.4).render(output_shape=[10, 10])
        self.assertEqual(im.getPixel(5, 4), (102, 0, 0, 255))
        im = SingleSphereExample(intensity=2.0).render(output_shape=[10, 10])
        self.assertEqual(im.getPixel(5, 4), (255, 0, 0, 255))

    def test_empty_scene_is_background(self):
        im = EmptySceneExample().render(output_shape=[8, 8])
        np.testing.assert_array_equal(im.pixels, np.full((8, 8, 4), 255, dtype=np.uint8))
        im = EmptySceneExample(bg_color=(10, 20, 30)).render(output_shape=[6, 6])
        self.assertEqual(im.getPixel(3, 3), (10, 20, 30, 255))

    def test_no_lights_is_black(self):
        scene = Scene([Sphere(vec([0, 0, 3]), 1, vec([255, 0, 0]))], [])
        im = render_image(scene, Camera(), 10, 10)
        self.assertEqual(im.getPixel(5, 4), (0, 0, 0, 255))
        self.assertEqual(im.getPixel(0, 0), WHITE)

    def test_present_once_per_render(self):
        canvas = Canvas(6, 6)
        renderer = Renderer(EmptySceneExample().scene, Camera(), canvas)
        buffer = renderer.buffer
        self.assertEqual(canvas.present_count, 0)
        renderer.render()
        self.assertEqual(canvas.present_count, 1)
        renderer.render()
        self.assertEqual(canvas.present_count, 2)
        self.assertIs(renderer.buffer, buffer)

    def test_wide_canvas_sweeps_height_only(self):
        # 8 wide, 4 tall: only the 4 middle columns are traced
        im = EmptySceneExample().render(output_shape=[4, 8])
        np.testing.assert_array_equal(im.pixels[:, 2:6], 255)
        np.testing.assert_array_equal(im.pixels[:, :2], 0)
        np.testing.assert_array_equal(im.pixels[:, 6:], 0)

    def test_tall_canvas_fills_width(self):
        im = EmptySceneExample().render(output_shape=[8, 4])
        np.testing.assert_array_equal(im.pixels, 255)

    def test_odd_square_canvas_fills(self):
        im = EmptySceneExample().render(output_shape=[5, 5])
        np.testing.assert_array_equal(im.pixels, 255)

    def test_three_spheres(self):
        example = ThreeSpheresExample()
        self.assertTrue(all(isinstance(s, Sphere) for s in example.scene.spheres))
        im = example.render(output_shape=[20, 20])
        self.assertEqual(tuple(im.shape), (20, 20, 4))
        np.testing.assert_array_equal(im.pixels[:, :, 3], 255)
        # bottom-left corner looks down at the floor sphere, which is yellow
        r, g, b, _ = im.getPixel(0, 19)
        self.assertEqual(b, 0)
        self.assertEqual(r, g)
        self.assertGreater(r, 0)

    def test_verbose_progress(self):
        out = io.StringIO()
        with redirect_stdout(out):
            EmptySceneExample().render(output_shape=[4, 4], verbose=True)
        self.assertIn("rendering row 4/4...", out.getvalue())

    def test_write_to_file(self):
        with tempfile.TemporaryDirectory() as d:
            path = os.path.join(d, 'out.png')
            im = SingleSphereExample().render(output_path=path, output_shape=[12, 16])
            with PIM.open(path) as pim:
                self.assertEqual(pim.size, (16, 12))
                self.assertEqual(pim.mode, "RGBA")
            loaded = Image(path)
            self.assertEqual((loaded.width, loaded.height), (16, 12))
            np.testing.assert_array_equal(loaded.pixels, im.pixels)


CONFIG = {
    'viewport': {'sizeX': 1, 'sizeY': 1, 'distance': 1},
    'spheres': [{'center': [0, 0, 3], 'radius': 1, 'color': [255, 0, 0]}],
    'lights': [
        {'type': 'ambient', 'intensity': 0.2},
        {'type': 'point', 'intensity': 0.6, 'pos': [2, 1, 0]},
        {'type': 'directional', 'intensity': 0.2, 'pos': [1, 4, 4]},
    ],
}


class TestConfig(unittest.TestCase):

    def test_scene_from_config(self):
        scene, camera = scene_from_config(CONFIG)
        self.assertEqual(len(scene.spheres), 1)
        self.assertEqual(scene.spheres[0].radius, 1.0)
        self.assertEqual([light.kind for light in scene.lights],
                         [LightKind.AMBIENT, LightKind.POINT, LightKind.DIRECTIONAL])
        np.testing.assert_allclose(scene.lights[1].position, [2, 1, 0])
        np.testing.assert_allclose(scene.lights[2].direction, [1, 4, 4])
        np.testing.assert_allclose(camera.eye, [0, 0, 0])
        np.testing.assert_allclose(scene.bg_color, [255, 255, 255])
        self.assertEqual(camera.viewport.distance, 1.0)

    def test_optional_keys(self):
        config = dict(CONFIG, origin=[0, 0, -1], backgroundColor=[0, 0, 0])
        config['lights'] = [{'type': 'Directional', 'intensity': 1, 'direction': [0, 0, -1]}]
        scene, camera = scene_from_config(config)
        np.testing.assert_allclose(camera.eye, [0, 0, -1])
        np.testing.assert_allclose(scene.bg_color, [0, 0, 0])
        self.assertIsInstance(scene.lights[0], DirectionalLight)

    def test_empty_lists(self):
        scene, _ = scene_from_config({'viewport': CONFIG['viewport']})
        self.assertEqual(scene.spheres, ())
        self.assertEqual(scene.lights, ())

    def test_bad_configs(self):
        bad = [
            {},
            dict(CONFIG, spheres=[{'center': [0, 0, 3], 'radius': -1, 'color': [255, 0, 0]}]),
            dict(CONFIG, spheres=[{'center': [0, 0], 'radius': 1, 'color': [255, 0, 0]}]),
            dict(CONFIG, spheres=[{'radius': 1, 'color': [255, 0, 0]}]),
            dict(CONFIG, lights=[{'type': 'spot', 'intensity': 1}]),
            dict(CONFIG, lights=[{'intensity': 1}]),
            dict(CONFIG, lights=[{'type': 'point', 'intensity': 1}]),
            dict(CONFIG, lights=[{'type': 'point', 'intensity': 1, 'pos': [1, 2]}]),
            dict(CONFIG, origin=[0, 0]),
            dict(CONFIG, viewport={'sizeX': 'abc', 'sizeY': 1, 'distance': 1}),
            dict(CONFIG, lights=None),
            dict(CONFIG, lights=['ambient']),
            dict(CONFIG, lights=[{'type': 'ambient', 'intensity': [1]}]),
        ]
        for config in bad:
            with self.assertRaises(InvalidScene):
                scene_from_config(config)
        with self.assertRaises(InvalidViewport):
            scene_from_config(dict(CONFIG, viewport={'sizeX': 1, 'sizeY': 1, 'distance': 0}))

    def test_config_renders_end_to_end(self):
        config = dict(CONFIG, lights=[{'type': 'ambient', 'intensity': 1}])
        scene, camera = scene_from_config(config)
        im = render_image(scene, camera, 100, 100)
        self.assertEqual(im.getPixel(50, 49), (255, 0, 0, 255))
        self.assertEqual(im.getPixel(0, 0), WHITE)


class TestCli(unittest.TestCase):

    def test_load_bundled_scene(self):
        path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'scenes', 'three_spheres.json')
        scene, camera = cli.load_scene_file(path)
        self.assertEqual(len(scene.spheres), 4)
        self.assertEqual(len(scene.lights), 3)

    def test_main_writes_image(self):
        with tempfile.TemporaryDirectory() as d:
            scene_path = os.path.join(d, 'scene.json')
            out_path = os.path.join(d, 'out.png')
            with open(scene_path, 'w') as f:
                json.dump(CONFIG, f)
            with redirect_stdout(io.StringIO()) as out:
                status = cli.main([scene_path, '-o', out_path, '--width', '8', '--height', '8'])
            self.assertEqual(status, 0)
            self.assertIn(out_path, out.getvalue())
            with PIM.open(out_path) as pim:
                self.assertEqual(pim.size, (8, 8))

    def test_render_from_script(self):
        example = SingleSphereExample()
        with tempfile.TemporaryDirectory() as d:
            out_path = os.path.join(d, 'single.png')
            with redirect_stdout(io.StringIO()):
                im = cli.render(example.scene, example.camera, ['-o', out_path, '--width', '10', '--height', '10'])
            self.assertTrue(os.path.exists(out_path))
            self.assertEqual(im.getPixel(5, 4), (255, 0, 0, 255))

    def test_main_errors(self):
        with tempfile.TemporaryDirectory() as d:
            missing = os.path.join(d, 'missing.json')
            bad_json = os.path.join(d, 'bad.json')
            bad_scene = os.path.join(d, 'bad_scene.json')
            null_lights = os.path.join(d, 'null_lights.json')
            with open(bad_json, 'w') as f:
                f.write('{not json')
            with open(bad_scene, 'w') as f:
                json.dump({'spheres': []}, f)
            with open(null_lights, 'w') as f:
                json.dump(dict(CONFIG, lights=None), f)
            for path in (missing, bad_json, bad_scene, null_lights):
                with redirect_stderr(io.StringIO()), self.assertRaises(SystemExit):
                    cli.main([path])


if __name__ == '__main__':
    unittest.main()
