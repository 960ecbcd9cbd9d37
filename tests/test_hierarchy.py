"""Tests for hierarchy.py — grouping flat file rows into the browser tree."""

from hierarchy import build_tree, tree_to_dict
from models import FileRecord


def _file(id, subject_id, subject_name="Data Structures", group="Core Subjects",
          semester=3, branch_name="Computer Science and Engineering", branch_code="CSE"):
    return FileRecord(
        id=id, file_tag_id=f"{branch_code}_S{semester}_{id:03d}", filename=f"f{id}.pdf",
        subject_id=subject_id, subject_name=subject_name, course_code=f"C{subject_id}",
        branch_code=branch_code, branch_name=branch_name, semester=semester,
        group_code=group[:4].upper(), group_name=group,
        uploaded_by="anitha@mgits.ac.in", upload_time="2026-10-01T10:00:00",
    )


class TestBuildTree:
    def test_empty(self):
        assert build_tree([]) == []

    def test_shared_subject_appears_once(self):
        tree = build_tree([_file(1, 10), _file(2, 10), _file(3, 10)])
        assert len(tree) == 1
        semesters = tree[0].semesters
        assert len(semesters) == 1
        assert len(semesters[0].subjects) == 1
        assert [f.id for f in semesters[0].subjects[0].files] == [1, 2, 3]

    def test_semester_label(self):
        tree = build_tree([_file(1, 10)])
        assert tree[0].semesters[0].label == "Semester 3 (Computer Science and Engineering)"

    def test_branches_split_semester_nodes(self):
        tree = build_tree([
            _file(1, 10),
            _file(2, 20, branch_name="Mechanical Engineering", branch_code="ME"),
        ])
        labels = [s.label for s in tree[0].semesters]
        assert labels == [
            "Semester 3 (Computer Science and Engineering)",
            "Semester 3 (Mechanical Engineering)",
        ]

    def test_keeps_input_order(self):
        files = [
            _file(5, 30, group="Laboratory"),
            _file(4, 10),
            _file(3, 20, subject_name="Algorithms"),
            _file(2, 30, group="Laboratory"),
        ]
        tree = build_tree(files)
        assert [g.group_name for g in tree] == ["Laboratory", "Core Subjects"]
        core_subjects = tree[1].semesters[0].subjects
        assert [s.subject_id for s in core_subjects] == [10, 20]
        assert [f.id for f in tree[0].semesters[0].subjects[0].files] == [5, 2]

    def test_same_subject_id_under_different_groups_kept_apart(self):
        tree = build_tree([_file(1, 10), _file(2, 10, group="Electives")])
        assert len(tree) == 2
        assert all(len(g.semesters[0].subjects) == 1 for g in tree)


class TestTreeToDict:
    def test_shape(self):
        data = tree_to_dict(build_tree([_file(1, 10)]))
        assert data[0]["group"] == "Core Subjects"
        semester = data[0]["semesters"][0]
        assert semester["label"] == "Semester 3 (Computer Science and Engineering)"
        subject = semester["subjects"][0]
        assert subject["name"] == "Data Structures"
        assert subject["files"][0]["file_tag_id"] == "CSE_S3_001"
