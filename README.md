# advectflow

Scheduling strategies for the work-stream pattern, plus a small advection
test problem to time them on.

In the work-stream pattern, a *worker* runs once for each item. It uses a
scratch object as temporary storage and writes its result into a copy
object. A *copier* then folds each copy object into global state. Workers
may run at the same time on several threads. Copiers never overlap, and
they always see the items in their original order.

## Modules

### `advectflow.workstream`

Every runner takes `items`, `worker(item, scratch, copy)`,
`copier(copy)`, a sample scratch object and a sample copy object. Scratch
and copy objects are made from the samples with `copy.deepcopy`. Either
`worker` or `copier` may be `None`, and that step is then skipped.

- `run_serial`: runs everything on the calling thread. One scratch object
  and one copy object are reused for all items.
- `run_per_item`: one task per item. Each task gets a fresh scratch object
  and a fresh copy object.
- `run_batched`: like `run_per_item`, but at most `max_tasks` items are in
  flight at once. The default is 512.
- `run_chunked`: one task per chunk of `chunk_size` items. The default is 8.
- `run_chunked_thread_local`: chunked, with one scratch object per thread.
  Items are only grouped into chunks when there are at least three chunks
  per thread. Otherwise each item is its own task.
- `run`: dispatches on a `Strategy`. The members are `SERIAL`,
  `PER_ITEM` (`"v1"`), `BATCHED` (`"v2"`), `CHUNKED` (`"v3"`) and
  `CHUNKED_THREAD_LOCAL` (`"v4"`).

`n_threads` defaults to `os.cpu_count()`. With one thread, every strategy
falls back to `run_serial`. A thread count, chunk size or `max_tasks` below
one raises `ValueError`.

### `advectflow.equation_data`

The data of a stationary advection problem in one, two or three dimensions:

- `AdvectionField(dim)`: the direction field. Its first component is 2 and
  the others are `1 + 0.8 sin(8 pi x)`.
- `RightHandSide(dim)`: a constant source, nonzero only within distance 0.1
  of the point `(-0.75, ..., -0.75)`.
- `BoundaryValues()`: `exp(5(1 - |p|^2)) sin(16 pi |p|^2)`.

Each class has `value` and `value_list`. A point of the wrong size raises
`DimensionMismatchError`. A `component` other than 0 raises `IndexError`.
An unsupported dimension raises `ValueError`.

### `advectflow.mesh`

`Mesh(lower, upper)` is a box. After `refine_global(times)` it is split
into `2**level` equal cells along each axis.

- `active_cells()` yields `Cell` objects ordered by `active_cell_index`.
- `neighbors(cell)` gives the cells across interior faces.
- `at_boundary(cell)` tells whether any face of the cell lies on the box
  boundary.
- `n_active_cells()` gives the number of cells.

A `Cell` has `center`, `volume` and `diameter()`.

### `advectflow.gradient`

A finite-difference gradient indicator for a field with one value per
active cell.

`estimate_cell(cell, neighbors, values)` returns
`h**(1 + dim/2) * |g|` for one cell. Here `g` is the least-squares gradient
from the differences to the neighbouring cells, and `h` is the cell
diameter.

`estimate(mesh, values, error_per_cell, n_threads)` fills `error_per_cell`
for every cell in parallel and also returns it. It raises
`InvalidVectorLengthError` when `values` or `error_per_cell` does not have
one entry per active cell. It raises `InsufficientDirectionsError` when a
cell's neighbours do not span every direction, as happens on an unrefined
mesh with a single cell.

### `advectflow.benchmark`

- `thread_limits(n_phys_cores)`: the thread limits to try. The first is
  `None`, meaning automatic. The rest go from `n_phys_cores` down to 1,
  halving each time.
- `time_runs(func, runs)`: the wall time of each call.
- `benchmark_strategy(...)`: times one strategy at every thread limit and
  returns `BenchmarkResult` objects, each with `times`, `average` and
  `label`.
- `format_result(result)`: renders a result as a report line.

## Installation

```
pip install .
```

## Command line

```
advectflow-benchmark
```

The command builds a mesh on `[-1, 1]^dim` and refines it
`--initial-refinements` times. That default is 5. Each further cycle adds
two more refinements. In every cycle, the command assembles a cell-wise
right-hand side with each chosen strategy. For every thread limit it
prints the time of each run and their average.

Options:

- `--dim {1,2,3}`: space dimension. Default 2.
- `--initial-refinements N`: refinements before the first cycle. Default 5.
- `--cycles N`: number of cycles. Default 2.
- `--runs N`: timed runs per thread limit. Default 5.
- `--cores N`: core count used to derive the thread limits. Defaults to
  `os.cpu_count()`.
- `--strategy {v1,v2,v3,v4}`: the strategy to time. It may be repeated.
  By default all four are timed.

On an error, the command prints the message and exits with status 1.

## Library use

```python
from advectflow.workstream import Strategy, run

totals = []

def worker(item, scratch, copy):
    copy["value"] = item * item

def copier(copy):
    totals.append(copy["value"])

run(range(10), worker, copier, {}, {}, Strategy.CHUNKED, 4, 8)
assert totals == [i * i for i in range(10)]
```

## What it does not do

The benchmark only assembles a simplified right-hand side, with one value
per cell. The package does not:

- assemble or solve a finite-element linear system;
- refine the mesh adaptively from the gradient indicator, since the mesh
  only supports uniform global refinement;
- write any solution or mesh files for visualisation.