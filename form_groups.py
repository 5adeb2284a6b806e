#!/usr/bin/env python3
# Lab group former: splits each lab section into groups of 4 (or 3) students,
# scoring every group against the preference survey and improving the groups
# with randomized swaps. The best of many random restarts is kept per section.

# --- Imports ---
# csv: For reading the roster and survey exports (entry point only).
# random: Default random source for shuffling, swaps and coin flips.
# collections.Counter: Used in the summary to count group sizes.
# dataclasses: Immutable student and group records.
import csv
import random
from collections import Counter
from dataclasses import dataclass
# matplotlib.pyplot / seaborn: Used to create and save the summary charts.
import matplotlib.pyplot as plt
import seaborn as sns

# --- Configuration Section ---
# Target number of students per group. Groups of GROUP_SIZE - 1 are allowed.
GROUP_SIZE = 4

# Tuning knobs for the optimizer. The defaults give a quick run.
# For a full run use FULL_RUN_OPT_1 and FULL_RUN_OPT_2 (much slower).
N_OPT_1 = 100      # Random-swap iterations (Pass A) per restart.
N_OPT_2 = 10       # Repeats of the worst-first swap pass (Pass B) per restart.
N_RESTARTS = 100   # Independent restarts per section; the best one is kept.

FULL_RUN_OPT_1 = 10000
FULL_RUN_OPT_2 = 1000

ROSTER_FILE = "data/roster.csv"
SURVEY_FILE = "data/survey.csv"
EMAIL_DOMAIN = "umich.edu"

# Survey columns holding the TRUE/FALSE preference flags.
QUALITIES = (
    "pref_less_comfortable",
    "pref_fast_pace",
    "pref_retake",
    "pref_plus_12",
)

# Penalties are tiered so that the worst violations get fixed first.
RETAKE_MIX_PENALTY = 1000000
SURVEY_MIX_PENALTY = 100000
MAJOR_PENALTY = 10000
MINOR_PENALTY = 1000


# --- Data Model ---

@dataclass(frozen=True)
class NonSurveyStudent:
    """A roster entry for a student who never filled in the survey."""
    uniqname: str
    email: str
    section: int
    full_name: str

    did_survey = False


@dataclass(frozen=True)
class SurveyStudent:
    """
    A roster entry joined with the student's survey answers.

    background and confidence are self-ratings from 1 (lowest) to 5.
    pref_plus_12 is shown in reports but is not used for scoring.
    """
    uniqname: str
    email: str
    section: int
    full_name: str
    preferred_name: str
    background: int
    confidence: int
    pref_less_comfortable: bool = False
    pref_fast_pace: bool = False
    pref_retake: bool = False
    pref_plus_12: bool = False

    did_survey = True


@dataclass(frozen=True)
class Group:
    """An immutable set of students. Swaps build new groups instead of editing this one."""
    students: tuple = ()

    def __len__(self):
        return len(self.students)

    def __iter__(self):
        return iter(self.students)

    @property
    def section(self):
        return self.students[0].section if self.students else None


def all_did_survey(students):
    return all(s.did_survey for s in students)


def none_did_survey(students):
    return not any(s.did_survey for s in students)


def check_all_surveyed(students):
    """Raises AssertionError if any non-surveyed student slipped into a survey-only list."""
    if not all_did_survey(students):
        raise AssertionError("Assert failed: survey-only student list contains a non-surveyed student")
    return students


def describe_student(student):
    """One line describing a student for the console report."""
    if not student.did_survey:
        return student.email
    tags = ""
    if student.pref_retake:
        tags += "(retake)"
    if student.pref_plus_12:
        tags += "(+12)"
    if student.pref_fast_pace:
        tags += "(fast pace)"
    if student.pref_less_comfortable:
        tags += "(less comfortable)"
    return (f"{student.email} {student.preferred_name}: "
            f"bg({student.background}) conf({student.confidence}){tags}")


# --- Roster Joining ---

def build_roster(roster_rows, survey_rows):
    """
    Joins roster rows with survey rows (both as dictionaries, e.g. from csv.DictReader).

    Returns (students, sections): the students in roster order and the sorted
    list of every section number seen on the roster.
    Duplicate roster rows are skipped; the first occurrence of an email wins.
    Survey rows for emails that are not on the roster are reported and skipped.
    """
    students = []
    index_by_email = {}
    sections = set()

    for row in roster_rows:
        uniqname = row["uniqname"].strip().lower()
        section = int(row["section"])
        # Track every section, even ones only seen on a duplicate row.
        sections.add(section)

        email = f"{uniqname}@{EMAIL_DOMAIN}"
        if email in index_by_email:
            continue

        index_by_email[email] = len(students)
        students.append(NonSurveyStudent(
            uniqname=uniqname,
            email=email,
            section=section,
            full_name=row["Name"],
        ))

    for row in survey_rows:
        email = row["email"].strip()
        idx = index_by_email.get(email)
        if idx is None:
            print(f"Student not in roster: {email}")
            continue

        base = students[idx]
        flags = {q: row[q] == "TRUE" for q in QUALITIES}
        # Students are immutable, so the roster entry is replaced in place.
        students[idx] = SurveyStudent(
            uniqname=base.uniqname,
            email=email,
            section=base.section,
            full_name=base.full_name,
            preferred_name=row["preferred_name"],
            background=int(row["previous_experience"]),
            confidence=int(row["confidence"]),
            **flags,
        )

    return students, sorted(sections)


def students_in_section(students, section):
    return [s for s in students if s.section == section]


# --- Core Logic ---

def create_random_groups(students, group_size=GROUP_SIZE, rng=random):
    """
    Shuffles the students and slices them into groups of group_size or group_size - 1.

    Example: 33 students, group size 4 -> [3, 3, 3, 4, 4, 4, 4, 4, 4].
    The last group would hold 33 % 4 = 1 student, so we take one student from
    each of (4 - 1) - 1 = 2 other groups to bring it up to 3. That gives
    4 - 33 % 4 = 3 groups of size 3. The extra % group_size covers N % 4 == 0.

    When no small groups are needed, a coin flip instead forms group_size groups
    of group_size - 1, so different restarts try different group-size layouts.
    """
    if group_size < 2:
        raise ValueError(f"group_size must be at least 2, got {group_size}")

    shuffled = list(students)
    rng.shuffle(shuffled)
    n = len(shuffled)

    num_small = (group_size - n % group_size) % group_size
    if num_small == 0 and n >= group_size * (group_size - 1):
        if rng.random() < 0.5:
            num_small = group_size

    groups = []
    i = 0
    while i < n:
        size = group_size - 1 if num_small > 0 else group_size
        num_small -= 1
        # Very small sections cannot meet the size rule; the last group takes the remainder.
        groups.append(Group(tuple(shuffled[i:i + size])))
        i += size
    return groups


def heuristic(group, group_size=GROUP_SIZE):
    """
    Penalty score for one group. Lower is better and 0 means no problems found.

    Penalties add up; a group can break several rules at once:
    - 1000000: retakers mixed with non-retakers
    - 100000:  students who took the survey mixed with students who did not
    - 10000:   background spread, isolated low confidence, risky confidence
               mixes, and groups smaller than group_size
    - 1000:    pace and comfort mismatches
    """
    members = group.students
    g_size = len(members)

    if none_did_survey(members):
        # Nobody did the survey; keep them together in a "random" group.
        return 0

    score = 0
    if not all_did_survey(members):
        score += SURVEY_MIX_PENALTY
        # For the rest, only consider students who did the survey.
        members = tuple(s for s in members if s.did_survey)

    surveyed = check_all_surveyed(members)

    # Retakers should either fill a group or be kept apart from it entirely.
    num_retakers = sum(1 for s in surveyed if s.pref_retake)
    if 0 < num_retakers < len(surveyed):
        score += RETAKE_MIX_PENALTY

    backgrounds = [s.background for s in surveyed]
    if any(b >= 4 for b in backgrounds) and any(b == 1 for b in backgrounds):
        # A 1 background paired with 4s and 5s.
        score += MAJOR_PENALTY
    elif all(b <= 2 for b in backgrounds):
        # Everyone has 2 or less background.
        score += MAJOR_PENALTY
    elif any(all(other > b + 1 for other in backgrounds[:i] + backgrounds[i + 1:])
             for i, b in enumerate(backgrounds)):
        # Someone for whom all the others are more than 1 higher in background.
        score += MAJOR_PENALTY

    low_confidence = [s for s in surveyed if s.confidence in (1, 2)]
    if len(low_confidence) == 1:
        score += MAJOR_PENALTY

    if low_confidence:
        if not any(s.confidence == 3 for s in surveyed):
            score += MAJOR_PENALTY
        if sum(1 for s in surveyed if s.confidence == 5) >= 2:
            score += MAJOR_PENALTY
        if any(s.pref_fast_pace and s.confidence > 3 for s in surveyed):
            score += MAJOR_PENALTY

    # Groups of 3 are allowed, but only when they help fix something worse.
    if g_size < group_size:
        score += MAJOR_PENALTY

    num_fast = sum(1 for s in surveyed if s.pref_fast_pace)
    num_less_comfortable = sum(1 for s in surveyed if s.pref_less_comfortable)

    if any(s.pref_less_comfortable and not s.pref_fast_pace for s in surveyed) and num_fast > 2:
        score += MINOR_PENALTY

    if num_fast == 1:
        score += MINOR_PENALTY

    if num_less_comfortable == 1:
        score += MINOR_PENALTY

    # A confidence-5 student with someone else who prefers a less comfortable pace.
    for i, s in enumerate(surveyed):
        if s.confidence == 5 and any(o.pref_less_comfortable for o in surveyed[:i] + surveyed[i + 1:]):
            score += MINOR_PENALTY
            break

    return score


def swap_random_students(g1, g2, rng=random):
    """Returns two new groups with one random student swapped between g1 and g2."""
    s1 = list(g1.students)
    s2 = list(g2.students)
    i1 = rng.randint(0, len(s1) - 1)
    i2 = rng.randint(0, len(s2) - 1)
    s1[i1], s2[i2] = s2[i2], s1[i1]
    return Group(tuple(s1)), Group(tuple(s2))


def optimize(groups, iterations=N_OPT_1, group_size=GROUP_SIZE, rng=random):
    """
    Pass A: random pairwise swaps.

    Each iteration picks two groups at random and swaps one random student
    between them. The swap is kept if the two groups' combined score does not
    get worse (ties are kept, so the search can move along plateaus).
    The list is updated in place and returned.
    """
    if iterations < 0:
        raise ValueError(f"iterations must be non-negative, got {iterations}")
    if len(groups) < 2:
        return groups

    for _ in range(iterations):
        i1 = rng.randint(0, len(groups) - 1)
        i2 = rng.randint(0, len(groups) - 1)
        if i1 == i2:
            # Swapping within one group would duplicate a student.
            continue

        g1, g2 = groups[i1], groups[i2]
        h_before = heuristic(g1, group_size) + heuristic(g2, group_size)

        g1_new, g2_new = swap_random_students(g1, g2, rng)
        h_after = heuristic(g1_new, group_size) + heuristic(g2_new, group_size)

        if h_after <= h_before:
            groups[i1] = g1_new
            groups[i2] = g2_new

    return groups


def optimize2(groups, group_size=GROUP_SIZE, rng=random):
    """
    Pass B: worst-first greedy swaps.

    Sorts the groups from worst to best score. For each group that still has
    a penalty, tries one random swap with every other group in turn and keeps
    the first one that does not make the pair worse.
    The list is sorted and updated in place and returned.
    """
    groups.sort(key=lambda g: heuristic(g, group_size), reverse=True)

    for i in range(len(groups)):
        g1 = groups[i]
        if heuristic(g1, group_size) == 0:
            continue

        for k in range(len(groups)):
            if k == i:
                continue

            g2 = groups[k]
            h_before = heuristic(g1, group_size) + heuristic(g2, group_size)

            g1_new, g2_new = swap_random_students(g1, g2, rng)
            h_after = heuristic(g1_new, group_size) + heuristic(g2_new, group_size)

            if h_after <= h_before:
                groups[i] = g1_new
                groups[k] = g2_new
                break

    return groups


def total_score(groups, group_size=GROUP_SIZE):
    return sum(heuristic(g, group_size) for g in groups)


# --- Restart Controller ---

def create_optimal_groups(students, group_size=GROUP_SIZE, opt1_iterations=N_OPT_1,
                          opt2_repeats=N_OPT_2, rng=random):
    """One restart: random groups, one Pass A, then Pass B repeated opt2_repeats times."""
    if opt2_repeats < 0:
        raise ValueError(f"opt2_repeats must be non-negative, got {opt2_repeats}")
    groups = create_random_groups(students, group_size, rng)
    optimize(groups, opt1_iterations, group_size, rng)
    for _ in range(opt2_repeats):
        optimize2(groups, group_size, rng)
    return groups


def best_groups_for_section(students, restarts=N_RESTARTS, group_size=GROUP_SIZE,
                            opt1_iterations=N_OPT_1, opt2_repeats=N_OPT_2, rng=random):
    """
    Runs create_optimal_groups `restarts` times and returns the groups with the
    lowest total score. On a tie the earliest restart is kept.
    """
    if restarts < 1:
        raise ValueError(f"restarts must be at least 1, got {restarts}")

    best_h = None
    best_groups = []
    for _ in range(restarts):
        groups = create_optimal_groups(students, group_size, opt1_iterations, opt2_repeats, rng)
        h = total_score(groups, group_size)
        if best_h is None or h < best_h:
            best_h = h
            best_groups = groups
    return best_groups


def form_groups(students, sections, restarts=N_RESTARTS, group_size=GROUP_SIZE,
                opt1_iterations=N_OPT_1, opt2_repeats=N_OPT_2, rng=random):
    """
    Main controller: forms groups for each section independently.
    Returns a dict of section number -> list of groups, in ascending section order.
    """
    results = {}
    for section in sorted(sections):
        print(f"Forming groups for section {section}...")
        section_students = students_in_section(students, section)
        results[section] = best_groups_for_section(
            section_students, restarts, group_size, opt1_iterations, opt2_repeats, rng)
    return results


# --- Reporting ---

def summarise(results, group_size=GROUP_SIZE):
    """Prints a summary report of the chosen groups. Scores are recomputed from membership."""
    all_groups = [g for groups in results.values() for g in groups]
    if not all_groups:
        print("Summary: No groups were created.")
        return

    print("\n--- Group Formation Summary ---")
    print(f"Total students assigned: {sum(len(g) for g in all_groups)}")
    print(f"Total groups created: {len(all_groups)}")

    group_number = 0
    for section, groups in results.items():
        print(f"\n--- Section: {section} ---")
        scores = [heuristic(g, group_size) for g in groups]
        sizes = Counter(len(g) for g in groups)
        print(f"  Groups: {len(groups)}")
        print("  Group size distribution:")
        for size, count in sorted(sizes.items(), reverse=True):
            print(f"    Size {size}: {count} groups")
        print(f"  Total penalty: {sum(scores)} (Lower is better)")
        print(f"  Groups with no penalty: {scores.count(0)} / {len(groups)}")

        for g, h in zip(groups, scores):
            print(f"\nGroup {group_number}: s={g.section} h={h}")
            for s in g:
                print(describe_student(s))
            group_number += 1


def create_visualizations(results, group_size=GROUP_SIZE, output_prefix="groups"):
    """Generates and saves charts summarising the chosen groups. Returns the saved file paths."""
    saved = []
    sections = []
    scores = []
    for section, groups in results.items():
        for g in groups:
            sections.append(section)
            scores.append(heuristic(g, group_size))

    if not scores:
        print("\nCannot create visualizations because no groups were formed.")
        return saved

    sns.set_theme(style="whitegrid")

    # --- Plot 1: Group penalties by section (box plot with individual groups) ---
    fig, ax = plt.subplots(figsize=(12, 6))
    sns.boxplot(x=sections, y=scores, color="skyblue", ax=ax)
    sns.stripplot(x=sections, y=scores, color="black", alpha=0.7, ax=ax)
    ax.set_title("Group Penalty Scores by Section")
    ax.set_xlabel("Section")
    ax.set_ylabel("Penalty (lower is better)")
    fig.tight_layout()
    path = f"{output_prefix}_penalties_by_section.png"
    fig.savefig(path)
    plt.close(fig)
    saved.append(path)
    print(f"Saved chart '{path}'")

    # --- Plot 2: Background experience of surveyed students per section ---
    bg_sections = []
    bg_levels = []
    for section, groups in results.items():
        for g in groups:
            for s in g:
                if s.did_survey:
                    bg_sections.append(section)
                    bg_levels.append(str(s.background))

    if not bg_levels:
        print("Skipping background chart: no survey responses.")
        return saved

    fig, ax = plt.subplots(figsize=(12, 6))
    sns.countplot(x=bg_sections, hue=bg_levels, hue_order=sorted(set(bg_levels)),
                  palette="Blues", ax=ax)
    ax.set_title("Background Experience of Surveyed Students by Section")
    ax.set_xlabel("Section")
    ax.set_ylabel("Number of Students")
    legend = ax.get_legend()
    if legend is not None:
        legend.set_title("Background")
    fig.tight_layout()
    path = f"{output_prefix}_background_by_section.png"
    fig.savefig(path)
    plt.close(fig)
    saved.append(path)
    print(f"Saved chart '{path}'")

    return saved


# --- Main Program Entry Point ---

def prompt_int(message, default, minimum):
    """Asks for an integer until a valid one is entered. Enter keeps the default."""
    while True:
        raw = input(message)
        if not raw.strip():
            print(f"No input detected, using default value: {default}.")
            return default
        try:
            value = int(raw)
        except ValueError:
            print("Error: Please enter a valid integer. Please try again.")
            continue
        if value < minimum:
            print(f"Error: Invalid input. Value must be at least {minimum}. Please try again.")
            continue
        return value


def main():
    full_run = input("Run the full (slow) optimization? (y/N): ").strip().lower() in ("y", "yes")
    opt1_iterations = FULL_RUN_OPT_1 if full_run else N_OPT_1
    opt2_repeats = FULL_RUN_OPT_2 if full_run else N_OPT_2

    restarts = prompt_int(
        f"Number of random restarts per section (press Enter for default {N_RESTARTS}): ",
        N_RESTARTS, 1)

    rng = random
    seed_raw = input("Random seed (press Enter for a different result each run): ").strip()
    if seed_raw:
        try:
            rng = random.Random(int(seed_raw))
        except ValueError:
            print("Error: Seed must be an integer. Continuing without a seed.")

    print(f"\nSetup successful! Groups of {GROUP_SIZE}, {restarts} restarts per section,")
    print(f"{opt1_iterations} random swaps and {opt2_repeats} worst-first passes per restart.")

    try:
        with open(ROSTER_FILE, newline="", encoding="utf-8") as f:
            roster_rows = list(csv.DictReader(f))
        with open(SURVEY_FILE, newline="", encoding="utf-8") as f:
            survey_rows = list(csv.DictReader(f))
        students, sections = build_roster(roster_rows, survey_rows)
    except (FileNotFoundError, ValueError, KeyError) as e:
        print(f"Error reading input file: {e}")
        return

    print(f"Found {len(students)} students in {len(sections)} sections.")

    results = form_groups(students, sections, restarts=restarts,
                          opt1_iterations=opt1_iterations, opt2_repeats=opt2_repeats, rng=rng)
    summarise(results)
    create_visualizations(results)


if __name__ == "__main__":
    main()
