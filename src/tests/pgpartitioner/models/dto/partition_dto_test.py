from pgpartitioner.models.column_type import ColumnTypeFamily
from pgpartitioner.models.dto.partition_dto import PartitionDTO, PartitionKeyDTO, PartitionedTableDTO, RangeGroupDTO


def group(key=None):
    return RangeGroupDTO(key=key, partitions=[
        PartitionDTO(name="orders_2001_3001", lower=2001, upper=3001),
        PartitionDTO(name="orders_mammoth", lower=-100, upper=1),
        PartitionDTO(name="orders_1_1001", lower=1, upper=1001),
        PartitionDTO(name="orders_1001_2001", lower=1001, upper=2001),
    ])


def test_original_data_partition_is_bounded_but_not_selectable():
    range_group = group()

    assert [p.name for p in range_group.bounded()][0] == "orders_mammoth"
    assert [p.name for p in range_group.selectable()] == ["orders_1_1001", "orders_1001_2001", "orders_2001_3001"]
    assert range_group.oldest().name == "orders_1_1001"
    assert range_group.last().name == "orders_2001_3001"


def test_partition_without_upper_bound_is_not_bounded():
    range_group = group()
    range_group.partitions.append(PartitionDTO(name="orders_3001_maxvalue", lower=3001, upper=None))

    assert "orders_3001_maxvalue" not in [p.name for p in range_group.bounded()]
    assert range_group.last().name == "orders_2001_3001"
    assert not range_group.partitions[-1].is_selectable


def test_contiguity():
    range_group = group()
    assert range_group.is_contiguous()

    range_group.partitions.append(PartitionDTO(name="orders_4001_5001", lower=4001, upper=5001))
    assert not range_group.is_contiguous()


def test_empty_group():
    assert RangeGroupDTO().last() is None
    assert RangeGroupDTO().oldest() is None


def test_active_groups_prefer_numbered_ranges():
    key = PartitionKeyDTO(column_name="id", column_type="int8", family=ColumnTypeFamily.INTEGER)
    default_group = group()
    r1 = RangeGroupDTO(key="r1", partitions=[PartitionDTO(name="orders_r1_1_11", lower=1, upper=11, range_key="r1")])
    table = PartitionedTableDTO(schema_name="public", table_name="orders", key=key, groups=[default_group, r1],
                                default_partition=PartitionDTO(name="orders_default", is_default=True))

    assert table.has_range_groups
    assert [g.key for g in table.active_groups()] == ["r1"]
    assert table.find("orders_r1_1_11").range_key == "r1"
    assert table.find("orders_default").is_default
    assert table.find("missing") is None


def test_key_cast_type():
    assert PartitionKeyDTO(column_name="id", column_type="int4", family=ColumnTypeFamily.INTEGER).cast_type == "bigint"
    assert PartitionKeyDTO(column_name="at", column_type="timestamptz",
                           family=ColumnTypeFamily.TIMESTAMP).cast_type == "timestamptz"
