# torsiontree

Kinematic trees for flexible molecules. A molecule is a rigid root with
rotatable branches hanging off it. Each branch turns about its bond axis by a
torsion angle. `torsiontree` does two jobs with such a tree:

- **Forward:** it turns a conformation into lab-frame atom coordinates. A
  conformation is a rigid-body position and orientation plus one angle per
  torsion.
- **Backward:** it gathers per-atom forces into a total force, a torque and one
  derivative per torsion. This is the gradient a local optimiser needs.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Building blocks

`torsiontree.tree` holds the geometry. Atom positions passed as `atoms` are
local to the frame that owns each atom. `coords` and `forces` are `(n, 3)`
NumPy arrays in lab coordinates, and `set_conf` writes into `coords` in place.

- `Frame` is an origin plus an orientation quaternion. Its `local_to_lab` and
  `local_to_lab_direction` methods map points and directions from the frame
  into the lab.
- `AtomRange` is a half-open range `[begin, end)` of atom indices. Its
  `transform(f)` method moves `begin` to `f(begin)` and keeps the length.
- `AtomFrame` ties a frame to a range of atoms. It has `set_coords` and
  `sum_force_and_torque`.
- `RigidBody` is the root of a ligand. It has a free position and orientation.
- `AxisFrame` is a frame that rotates about the axis from `axis_root` to its
  origin. It raises `ValueError` if the two points coincide.
- `Segment` hangs off a parent frame by one rotatable bond. The parent must
  still have the identity orientation when the segment is built.
- `FirstSegment` is the root of a flexible residue. It turns about a fixed
  axis.
- `Branch` is a segment with child branches.
- `MainBranch` is a tree rooted at a `FirstSegment`, used for flexible
  residues.
- `FlexibleBody` is a tree rooted at a `RigidBody`, used for ligands.
- `TreeList` is a list of trees that can be posed, counted and differentiated
  together.
- `RigidConf`, `LigandConf` and `ResidueConf` describe conformations.
- `RigidChange`, `LigandChange` and `ResidueChange` hold the derivatives that
  `derivative` returns.
- The helpers are `angle_to_quaternion`, `quaternion_to_matrix`,
  `count_torsions` and `transform_ranges`.

`set_conf` raises `ValueError` when a conformation has too few or too many
torsions for its tree.

`torsiontree.triangular` maps a pair `(i, j)` to its position in a packed upper
triangular matrix. `triangular_matrix_index` raises `ValueError` for negative
indices, `j >= n` or `i > j`. The permissive form swaps `i` and `j` when
needed.

```python
from torsiontree.triangular import (
    triangular_matrix_index,
    triangular_matrix_index_permissive,
)

triangular_matrix_index(4, 1, 2)             # 1 + 2*3/2 == 4
triangular_matrix_index_permissive(4, 2, 1)  # same cell, arguments swapped
```

`torsiontree.progress.ParallelProgress` is a progress counter that is safe to
use from several threads. `init(count)` draws a 0–100% scale on the given
stream, or on standard output if none is given. Each `increment()` adds stars
under the scale, calls the callback with the fraction done, and returns the new
count. Before `init`, `increment()` does nothing and returns `None`.

```python
from torsiontree.progress import ParallelProgress

progress = ParallelProgress(callback=lambda fraction: print(f"{fraction:.0%}"))
progress.init(10)
for _ in range(10):
    progress.increment()
```

## Example

```python
import numpy as np
from torsiontree.tree import (
    Branch, FlexibleBody, LigandConf, RigidBody, RigidConf, Segment,
)

atoms = np.array([[0.0, 0, 0], [1, 0, 0], [1, 1, 0]])
coords = np.zeros_like(atoms)

root = RigidBody(np.zeros(3), 0, 2)
segment = Segment(np.array([1.0, 0, 0]), 2, 3, np.zeros(3), root)
ligand = FlexibleBody(root, [Branch(segment, [])])

conf = LigandConf(RigidConf(np.zeros(3), np.array([1.0, 0, 0, 0])), [np.pi / 2])
ligand.set_conf(atoms, coords, conf)
change = ligand.derivative(coords, np.ones_like(coords))
# change.rigid.position, change.rigid.orientation, change.torsions
```

## What it does not do

`torsiontree` is only the kinematics layer. It has no scoring function, no
optimiser or search, and no reader for molecule files. You build the trees
yourself from frames and atom ranges. You also supply the forces it turns into
derivatives. There is no command-line program.