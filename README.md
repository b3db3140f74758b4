# brushsplat

Tools for working with Gaussian splat scenes:

- reading and writing PLY files: header parsing, ASCII and binary records,
  list properties (`brushsplat.ply`: `read_header`, `read_element`,
  `write_ply`, `PlyHeader`, `PlyElement`, `PlyProperty`, `Encoding`,
  `ScalarType`);
- loading splats from PLY data, including quantised animated delta frames
  (`brushsplat.splat_import.load_splat_from_ply`, `SplatData`,
  `SplatMessage`, `SplatMetadata`, `GaussianData`, `interleave_coeffs`);
- writing splats as a binary little-endian PLY
  (`brushsplat.splat_export.splat_to_ply`);
- a closed-form eigen-solver for symmetric 3×3 matrices
  (`brushsplat.eigen.compute_sorted_eigenvectors`, `solve_cubic`,
  `find_eigenvector`);
- an orbit / pan / fly / roll camera controller driven by plain input state
  (`brushsplat.orbit.CameraController`, `brushsplat.orbit.ControlInput`,
  `smooth_orbit`, `exp_lerp`);
- query-string parsing and human-readable byte sizes
  (`brushsplat.util.parse_search`, `brushsplat.util.bytes_format`).

## Installation

```
pip install .
```

For running the test suite:

```
pip install ".[test]"
pytest
```

## Library use

Load a splat file. `load_splat_from_ply` is a generator: it yields partial
splats while the base `vertex` element is read, then the complete splat,
then one animated splat per `delta_vertex_*` element:

```python
from brushsplat.splat_import import load_splat_from_ply

with open("scene.ply", "rb") as stream:
    for message in load_splat_from_ply(stream, subsample_points=None):
        print(message.meta.current_frame, message.meta.total_splats,
              message.splats.num_splats)
```

The vertical axis is taken from a `Vertical axis: x|y|z` header comment and
reported as `message.meta.up_axis`. Passing `subsample_points=n` keeps every
n-th vertex.

Write splats back out. All of rotation, log scales, SH coefficients and
opacity must be present; otherwise `ValueError` is raised:

```python
from brushsplat.splat_export import splat_to_ply

data = splat_to_ply(message.splats)
with open("export.ply", "wb") as out:
    out.write(data)
```

Drive the camera one frame at a time; `tick` returns the cursor to show:

```python
from brushsplat.orbit import CameraController, ControlInput

camera = CameraController(4.0)
cursor = camera.tick(ControlInput(predicted_dt=1 / 60, keys_down=frozenset({"w"})))
matrix = camera.local_to_world()  # 4x4 numpy array
```

Helpers:

```python
from brushsplat.util import bytes_format, parse_search

parse_search("?zen=true&focal=0.5")   # {'zen': 'true', 'focal': '0.5'}
bytes_format(1500)                    # '1.50 KB'
```

## What this package does not do

It is a library only: it installs no command, has no viewer window, and
does not train or render splats. It does not open dataset archives or
directories, and does not load or process dataset images; splat data is
read from and written to streams and bytes you supply.