"""Tests for class metrics extraction."""

from annotrack.metrics import SUMMARY_KEY, calculate_delta, calculate_increase_pct, extract_class_metrics, iter_class_metrics


def _task(task_id, results):
    return {"id": task_id, "annotations": [{"result": results}]}


class TestExtractClassMetrics:
    """Tests for extract_class_metrics function."""

    def test_empty_task_list_has_only_summary(self):
        assert extract_class_metrics([]) == {
            SUMMARY_KEY: {"total_images": 0, "annotated_images": 0, "unannotated_images": 0},
        }

    def test_single_label_and_unannotated_task(self):
        tasks = [
            {"annotations": [{"result": [{"type": "labels", "value": {"labels": ["Cavity"]}}]}]},
            {"annotations": []},
        ]

        assert extract_class_metrics(tasks) == {
            "cavity": {"image_count": 1, "annotation_count": 1},
            SUMMARY_KEY: {"total_images": 2, "annotated_images": 1, "unannotated_images": 1},
        }

    def test_image_count_is_distinct_tasks(self):
        """Test that repeated labels on one image count once for images."""
        tasks = [
            _task(1, [{"type": "rectanglelabels", "value": {"rectanglelabels": ["Cavity"]}}] * 3),
            _task(2, [{"type": "polygonlabels", "value": {"polygonlabels": ["Cavity 2"]}}]),
        ]

        metrics = extract_class_metrics(tasks)

        assert metrics["cavity"] == {"image_count": 2, "annotation_count": 4}

    def test_tasks_without_id_stay_distinct(self):
        results = [{"type": "labels", "value": {"labels": ["Pulp"]}}]
        tasks = [{"annotations": [{"result": results}]}, {"annotations": [{"result": results}]}]

        assert extract_class_metrics(tasks)["pulp"]["image_count"] == 2

    def test_non_label_regions_ignored(self):
        tasks = [
            _task(
                1,
                [
                    {"type": "textarea", "value": {"text": ["note"]}},
                    {"type": "choices", "value": {"choices": ["Yes"]}},
                    {"type": "brushlabels", "value": {"brushlabels": ["Enamel"]}},
                ],
            )
        ]

        metrics = extract_class_metrics(tasks)

        assert set(metrics) == {"enamel", SUMMARY_KEY}
        assert metrics[SUMMARY_KEY]["annotated_images"] == 1

    def test_first_populated_label_list_used(self):
        region = {"type": "labels", "value": {"rectanglelabels": [], "labels": ["Crown"], "brushlabels": ["Bone"]}}

        metrics = extract_class_metrics([_task(1, [region])])

        assert "bone" in metrics
        assert "crown" not in metrics

    def test_annotated_task_with_empty_results_counts_as_annotated(self):
        metrics = extract_class_metrics([_task(1, [])])

        assert metrics[SUMMARY_KEY] == {"total_images": 1, "annotated_images": 1, "unannotated_images": 0}

    def test_summary_invariant(self):
        tasks = [_task(i, [{"type": "labels", "value": {"labels": ["Lesion"]}}]) for i in range(5)]
        tasks += [{"id": 10 + i, "annotations": []} for i in range(3)]

        summary = extract_class_metrics(tasks)[SUMMARY_KEY]

        assert summary["unannotated_images"] == summary["total_images"] - summary["annotated_images"] == 3

    def test_iter_class_metrics_skips_summary(self):
        metrics = extract_class_metrics([_task(1, [{"type": "labels", "value": {"labels": ["Cavity"]}}])])

        assert [name for name, _ in iter_class_metrics(metrics)] == ["cavity"]


class TestDeltas:
    """Tests for snapshot comparison helpers."""

    def test_delta_without_previous(self):
        assert calculate_delta({"cavity": {"image_count": 1}}, None) is None

    def test_delta_per_class_and_summary(self):
        previous = {
            "cavity": {"image_count": 2, "annotation_count": 3},
            SUMMARY_KEY: {"total_images": 10, "annotated_images": 4},
        }
        current = {
            "cavity": {"image_count": 5, "annotation_count": 9},
            "pulp": {"image_count": 1, "annotation_count": 1},
            SUMMARY_KEY: {"total_images": 12, "annotated_images": 7},
        }

        delta = calculate_delta(current, previous)

        assert delta["cavity"] == {"image_count_delta": 3, "annotation_count_delta": 6}
        assert delta["pulp"] == {"image_count_delta": 1, "annotation_count_delta": 1}
        assert delta[SUMMARY_KEY] == {"total_images_delta": 2, "annotated_images_delta": 3}

    def test_increase_pct(self):
        assert calculate_increase_pct(15, 10) == 50.0
        assert calculate_increase_pct(5, 0) == 0.0
