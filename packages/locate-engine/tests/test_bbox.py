import pytest

from locate_engine.bbox import parse_zoom, shrink_bbox, validate_bbox
from locate_engine.errors import BBoxFormatError, BBoxRejection, BBoxValidationError, InvalidZoomError


def test_validate_bbox_accepts_small_box() -> None:
    bbox = validate_bbox("3.37, 6.45, 3.40, 6.48")
    assert bbox.min_lon == 3.37
    assert bbox.max_lat == 6.48


def test_validate_bbox_is_idempotent_on_own_serialization() -> None:
    bbox = validate_bbox("-0.1278,51.5074,-0.1000,51.5200")
    assert validate_bbox(bbox.to_query()) == bbox


@pytest.mark.parametrize("raw", ["", "1,2,3", "1,2,3,4,5", "a,2,3,4", "1,2,inf,4", "nan,1,2,3", "1_0,20,10.5,20.5"])
def test_validate_bbox_rejects_bad_format(raw: str) -> None:
    with pytest.raises(BBoxFormatError):
        validate_bbox(raw)


def test_area_boundary_exactly_quarter_square_degree_is_valid() -> None:
    bbox = validate_bbox("10,20,10.5,20.5")
    assert bbox.area_deg2 == 0.25


def test_area_just_over_limit_is_rejected() -> None:
    with pytest.raises(BBoxValidationError) as exc_info:
        validate_bbox("10,20,10.51,20.5")
    assert exc_info.value.reason == BBoxRejection.AREA_TOO_LARGE


def test_ordering_check_wins_over_other_failures() -> None:
    with pytest.raises(BBoxValidationError) as exc_info:
        validate_bbox("10,95,5,100")
    assert exc_info.value.reason == BBoxRejection.ORDERING


def test_longitude_range_rejected() -> None:
    with pytest.raises(BBoxValidationError) as exc_info:
        validate_bbox("-180.2,10,-179.9,10.1")
    assert exc_info.value.reason == BBoxRejection.LONGITUDE_RANGE


def test_latitude_range_rejected() -> None:
    with pytest.raises(BBoxValidationError) as exc_info:
        validate_bbox("10,89.9,10.1,90.1")
    assert exc_info.value.reason == BBoxRejection.LATITUDE_RANGE


def test_shrink_bbox_halves_each_dimension_per_zoom_level() -> None:
    bbox = validate_bbox("10,20,10.4,20.4")
    shrunk = shrink_bbox(bbox, 1)
    assert shrunk.min_lon == pytest.approx(10.1)
    assert shrunk.max_lon == pytest.approx(10.3)
    assert shrunk.min_lat == pytest.approx(20.1)
    assert shrunk.max_lat == pytest.approx(20.3)
    assert shrunk.center == pytest.approx(bbox.center)


def test_shrink_bbox_zero_zoom_is_identity() -> None:
    bbox = validate_bbox("10,20,10.4,20.4")
    assert shrink_bbox(bbox, 0) == bbox


def test_shrink_bbox_rejects_negative_zoom() -> None:
    bbox = validate_bbox("10,20,10.4,20.4")
    with pytest.raises(InvalidZoomError):
        shrink_bbox(bbox, -1)


@pytest.mark.parametrize("raw", ["-1", "1.5", "inf", "abc"])
def test_parse_zoom_rejects_invalid_values(raw: str) -> None:
    with pytest.raises(InvalidZoomError):
        parse_zoom(raw)


def test_parse_zoom_accepts_integer_strings() -> None:
    assert parse_zoom("3") == 3
    assert parse_zoom(None) is None
