import pytest

from keydrop.exceptions import ConfigError, TileMarkerError
from keydrop.inventory import Inventory
from keydrop.map.grid import Position
from keydrop.map.tiles import Direction, TileKind
from keydrop.movement.engine import MoveResolver
from keydrop.movement.markers import ArrowMarkers


@pytest.fixture
def resolver():
    return MoveResolver()


def resolve(resolver, grid, pos, direction, inventory=None, markers=None, level_id=0):
    inventory = Inventory.full() if inventory is None else inventory
    markers = ArrowMarkers() if markers is None else markers
    return resolver.resolve(pos, direction, grid, inventory, markers, level_id)


class TestStepEvaluation:
    def test_plain_move(self, resolver, make_grid):
        grid = make_grid(["S.."])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(1, 0)
        assert out.delta == (1, 0)
        assert out.moved is True
        assert out.level_complete is False

    @pytest.mark.parametrize(
        "direction,start",
        [
            (Direction.UP, Position(1, 1)),
            (Direction.DOWN, Position(1, 1)),
            (Direction.LEFT, Position(1, 1)),
            (Direction.RIGHT, Position(1, 1)),
        ],
    )
    def test_wall_blocks_every_direction(self, resolver, make_grid, direction, start):
        grid = make_grid(["###", "#S#", "###"])
        out = resolve(resolver, grid, start, direction)
        assert out.new_position == start
        assert out.delta == (0, 0)
        assert out.moved is False

    def test_slide_stops_before_wall(self, resolver, make_grid):
        grid = make_grid(["S~#"])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(1, 0)

    def test_slide_carries_two_cells(self, resolver, make_grid):
        grid = make_grid(["S~.#"])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(2, 0)
        assert out.delta == (2, 0)

    def test_slides_never_chain(self, resolver, make_grid):
        grid = make_grid(["S~~~."])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(2, 0)

    def test_slide_works_vertically(self, resolver, make_grid):
        grid = make_grid([".", ".", "~", "S"])
        out = resolve(resolver, grid, Position(0, 3), Direction.UP)
        assert out.new_position == Position(0, 1)

    def test_portal_moves_like_empty(self, resolver, make_grid):
        grid = make_grid(["SO."])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(1, 0)
        assert out.reached_end is False

    def test_out_of_bounds_target_is_treated_as_empty(self, resolver, make_grid):
        grid = make_grid(["S"])
        out = resolve(resolver, grid, Position(0, 0), Direction.LEFT)
        assert out.new_position == Position(-1, 0)


class TestEndTile:
    def test_exact_keys_complete_level(self, resolver, make_grid):
        grid = make_grid(["SE"], goal=["up", "down"])
        held = Inventory({Direction.UP, Direction.DOWN})
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=held)
        assert out.new_position == Position(1, 0)
        assert out.reached_end is True
        assert out.level_complete is True

    def test_extra_keys_enter_end_without_completing(self, resolver, make_grid):
        grid = make_grid(["SE"], goal=["up", "right"])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(1, 0)
        assert out.reached_end is True
        assert out.level_complete is False

    def test_check_sees_key_dropped_on_the_way(self, resolver, make_grid):
        grid = make_grid(["DE"], goal=["up", "down", "left"])
        inv = Inventory.full()
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=inv)
        assert out.dropped is Direction.RIGHT
        assert out.level_complete is True

    def test_sliding_onto_end_does_not_check(self, resolver, make_grid):
        grid = make_grid(["S~E"], goal=["up", "down", "left", "right"])
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT)
        assert out.new_position == Position(2, 0)
        assert out.reached_end is False
        assert out.level_complete is False

    def test_missing_goal_is_config_error_before_any_mutation(self, resolver, make_grid, markers):
        grid = make_grid(["DE"], goal=["up"])
        inv = Inventory.full()
        with pytest.raises(ConfigError):
            resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=inv, markers=markers, level_id=9)
        assert grid.kind_at(Position(0, 0)) is TileKind.DROP
        assert inv == Inventory.full()
        assert len(markers) == 0


class TestDropAndPickup:
    def test_leaving_drop_tile_stores_attempted_direction(self, resolver, make_grid, markers):
        grid = make_grid(["...", "SD.", "..."])
        inv = Inventory.full()
        out = resolve(resolver, grid, Position(1, 1), Direction.UP, inventory=inv, markers=markers)

        assert out.new_position == Position(1, 0)
        assert out.dropped is Direction.UP
        assert Direction.UP not in inv
        assert out.key_lost is True
        assert grid.kind_at(Position(1, 1)) is TileKind.PICKUP
        assert grid.bound_key_at(Position(1, 1)) is Direction.UP
        assert markers.get(Position(1, 1)) is Direction.UP

    def test_round_trip_restores_inventory(self, resolver, make_grid, markers):
        grid = make_grid(["...", "SD.", "..."])
        inv = Inventory.full()
        before = inv.as_set()

        resolve(resolver, grid, Position(1, 1), Direction.UP, inventory=inv, markers=markers)
        back = resolve(resolver, grid, Position(1, 0), Direction.DOWN, inventory=inv, markers=markers)
        assert back.new_position == Position(1, 1)
        assert back.picked_up is None

        out = resolve(resolver, grid, Position(1, 1), Direction.RIGHT, inventory=inv, markers=markers)
        assert out.picked_up is Direction.UP
        assert out.new_position == Position(2, 1)
        assert inv.as_set() == before
        assert grid.kind_at(Position(1, 1)) is TileKind.DROP
        assert grid.bound_key_at(Position(1, 1)) is None
        assert Position(1, 1) not in markers

    def test_drop_without_holding_the_key_still_binds_it(self, resolver, make_grid, markers):
        grid = make_grid([".", "D", "."])
        inv = Inventory({Direction.DOWN})
        out = resolve(resolver, grid, Position(0, 1), Direction.UP, inventory=inv, markers=markers)
        assert out.dropped is Direction.UP
        assert inv.as_set() == frozenset({Direction.DOWN})
        assert out.key_lost is False
        assert grid.bound_key_at(Position(0, 1)) is Direction.UP

    def test_drop_happens_even_when_wall_blocks(self, resolver, make_grid, markers):
        grid = make_grid(["#", "D"])
        inv = Inventory.full()
        out = resolve(resolver, grid, Position(0, 1), Direction.UP, inventory=inv, markers=markers)
        assert out.moved is False
        assert out.dropped is Direction.UP
        assert grid.kind_at(Position(0, 1)) is TileKind.PICKUP

    def test_pickup_without_marker_refuses_step(self, resolver, make_grid, markers):
        grid = make_grid(["P."], bindings={Position(0, 0): Direction.LEFT})
        inv = Inventory({Direction.RIGHT})
        with pytest.raises(TileMarkerError):
            resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=inv, markers=markers)
        assert inv.as_set() == frozenset({Direction.RIGHT})
        assert grid.kind_at(Position(0, 0)) is TileKind.PICKUP

    def test_authored_pickup_with_marker_returns_key(self, resolver, make_grid, markers):
        grid = make_grid(["P."], bindings={Position(0, 0): Direction.LEFT})
        markers.place(Position(0, 0), Direction.LEFT)
        inv = Inventory({Direction.RIGHT})
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=inv, markers=markers)
        assert out.picked_up is Direction.LEFT
        assert inv.as_set() == frozenset({Direction.LEFT, Direction.RIGHT})
        assert len(markers) == 0
        assert out.key_gained is True

    def test_pickup_of_held_key_changes_nothing_in_inventory(self, resolver, make_grid, markers):
        grid = make_grid(["P."], bindings={Position(0, 0): Direction.LEFT})
        markers.place(Position(0, 0), Direction.LEFT)
        inv = Inventory.full()
        out = resolve(resolver, grid, Position(0, 0), Direction.RIGHT, inventory=inv, markers=markers)
        assert out.picked_up is Direction.LEFT
        assert out.key_gained is False
        assert inv.as_set() == Inventory.full().as_set()
        assert grid.kind_at(Position(0, 0)) is TileKind.DROP
