from utils import *
from tracer import *
from cli import render

# One red sphere straight ahead, lit only by ambient light
scene = Scene([
    Sphere(vec([0, 0, 3]), 1, vec([255, 0, 0])),
], [
    AmbientLight(1.0),
])

camera = Camera(vec([0, 0, 0]), Viewport(1, 1, 1))

render(camera=camera, scene=scene)
