import argparse
import json
import sys

from geometry import RayTracerError
from tracer import render_image, scene_from_config


def load_scene_file(path):
    """Read a JSON scene configuration and return (scene, camera)."""
    with open(path) as f:
        config = json.load(f)
    return scene_from_config(config)


def _add_output_arguments(parser):
    parser.add_argument('-o', '--output', type=str, default='render.png', help='Output image file')
    parser.add_argument('--width', type=int, default=256, help='Canvas width in pixels')
    parser.add_argument('--height', type=int, default=256, help='Canvas height in pixels')
    parser.add_argument('--show', action='store_true', help='Display the image after rendering')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print per-row progress')


def _render_and_save(scene, camera, args):
    im = render_image(scene, camera, args.width, args.height,
                      output_path=args.output, verbose=args.verbose)
    print(f"Image saved to {args.output}")
    if args.show:
        im.show()
    return im


def render(scene, camera, argv=None):
    """Render a scene built by a scene script, taking output options from the command line."""
    parser = argparse.ArgumentParser(description='Render a sphere scene')
    _add_output_arguments(parser)
    args = parser.parse_args(argv)
    return _render_and_save(scene, camera, args)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Python sphere ray tracer')
    parser.add_argument('scene_file', type=str, help='Path to a JSON scene file')
    _add_output_arguments(parser)
    args = parser.parse_args(argv)

    try:
        scene, camera = load_scene_file(args.scene_file)
    except OSError as e:
        parser.error(f"cannot read scene file: {e}")
    except json.JSONDecodeError as e:
        parser.error(f"scene file is not valid JSON: {e}")
    except RayTracerError as e:
        parser.error(f"invalid scene: {e}")

    _render_and_save(scene, camera, args)
    return 0


if __name__ == '__main__':
    sys.exit(main())
