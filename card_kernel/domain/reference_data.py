"""
Reference tables for field validation.

Responsibility:
    Holds the domain reference data the validation rules consult: valid US
    state/territory codes, the USPS three-digit ZIP prefix ranges for each
    code, and the North American Numbering Plan area-code tables.

Architecture position:
    Kernel > Domain -- static data, zero I/O.  Imported only by
    card_kernel.domain.validation.

Sources:
    - ZIP prefixes: USPS three-digit sectional center facility assignments,
      including military (AA/AE/AP) and freely associated states.
    - Area codes: NANPA geographic assignments for the US, Canada and
      participating Caribbean nations; reserved codes are the NANP
      easily-recognisable, N11 service, toll-free, premium and test codes.
"""

from __future__ import annotations

from types import MappingProxyType

# ---------------------------------------------------------------------------
# State / territory -> inclusive ranges of three-digit ZIP prefixes
# ---------------------------------------------------------------------------

_ZIP_PREFIX_RANGES: dict[str, tuple[tuple[int, int], ...]] = {
    # States
    "AL": ((350, 369),),
    "AK": ((995, 999),),
    "AZ": ((850, 865),),
    "AR": ((716, 729),),
    "CA": ((900, 961),),
    "CO": ((800, 816),),
    "CT": ((60, 69),),
    "DE": ((197, 199),),
    "FL": ((320, 349),),
    "GA": ((300, 319), (398, 399)),
    "HI": ((967, 968),),
    "ID": ((832, 838),),
    "IL": ((600, 629),),
    "IN": ((460, 479),),
    "IA": ((500, 528),),
    "KS": ((660, 679),),
    "KY": ((400, 427),),
    "LA": ((700, 714),),
    "ME": ((39, 49),),
    "MD": ((206, 219),),
    "MA": ((10, 27), (55, 55)),
    "MI": ((480, 499),),
    "MN": ((550, 567),),
    "MS": ((386, 397),),
    "MO": ((630, 658),),
    "MT": ((590, 599),),
    "NE": ((680, 693),),
    "NV": ((889, 898),),
    "NH": ((30, 38),),
    "NJ": ((70, 89),),
    "NM": ((870, 884),),
    "NY": ((5, 5), (63, 63), (100, 149)),
    "NC": ((270, 289),),
    "ND": ((580, 588),),
    "OH": ((430, 459),),
    "OK": ((730, 749),),
    "OR": ((970, 979),),
    "PA": ((150, 196),),
    "RI": ((28, 29),),
    "SC": ((290, 299),),
    "SD": ((570, 577),),
    "TN": ((370, 385),),
    "TX": ((750, 799), (885, 885)),
    "UT": ((840, 847),),
    "VT": ((50, 54), (56, 59)),
    "VA": ((201, 201), (220, 246)),
    "WA": ((980, 994),),
    "WV": ((247, 268),),
    "WI": ((530, 549),),
    "WY": ((820, 831),),
    # Federal district
    "DC": ((200, 200), (202, 205), (569, 569)),
    # Territories and freely associated states
    "PR": ((6, 7), (9, 9)),
    "VI": ((8, 8),),
    "GU": ((969, 969),),
    "AS": ((967, 967),),
    "MP": ((969, 969),),
    "FM": ((969, 969),),
    "MH": ((969, 969),),
    "PW": ((969, 969),),
    # Military
    "AA": ((340, 340),),
    "AE": ((90, 98),),
    "AP": ((962, 966),),
}

ZIP_PREFIX_RANGES = MappingProxyType(_ZIP_PREFIX_RANGES)

VALID_STATE_CODES: frozenset[str] = frozenset(_ZIP_PREFIX_RANGES)


def zip_matches_state(state_code: str, zip_code: str) -> bool:
    """True if the 5-digit ZIP falls in a prefix range assigned to the state.

    Callers validate the ZIP format and the state code first; an unknown
    state or malformed ZIP simply returns False.
    """
    ranges = _ZIP_PREFIX_RANGES.get(state_code)
    if ranges is None or len(zip_code) != 5 or not zip_code.isdigit():
        return False
    prefix = int(zip_code[:3])
    return any(low <= prefix <= high for low, high in ranges)


# ---------------------------------------------------------------------------
# NANP area codes
# ---------------------------------------------------------------------------


def _codes(block: str) -> frozenset[str]:
    return frozenset(block.split())


GEOGRAPHIC_AREA_CODES: frozenset[str] = _codes(
    """
    201 202 203 204 205 206 207 208 209 210 212 213 214 215 216 217 218 219
    220 223 224 225 226 228 229 231 234 236 239 240 242 246 248 249 250 251
    252 253 254 256 260 262 264 267 268 269 270 272 276 279 281 284 289
    301 302 303 304 305 306 307 308 309 310 312 313 314 315 316 317 318 319
    320 321 323 325 326 330 331 332 334 336 337 339 340 341 343 345 346 347
    351 352 360 361 364 365 367 368 380 385 386
    401 402 403 404 405 406 407 408 409 410 412 413 414 415 416 417 418 419
    423 424 425 430 431 432 434 435 437 438 440 441 442 443 445 447 448 450
    458 463 464 469 470 473 474 475 478 479 480 484
    501 502 503 504 505 506 507 508 509 510 512 513 514 515 516 517 518 519
    520 530 531 534 539 540 541 548 551 559 561 562 563 564 567 570 571 572
    573 574 575 579 580 581 582 585 586 587
    601 602 603 604 605 606 607 608 609 610 612 613 614 615 616 617 618 619
    620 623 626 628 629 630 631 636 639 640 641 646 647 649 650 651 656 657
    658 659 660 661 662 664 667 669 670 671 672 678 680 681 682 683 684 689
    701 702 703 704 705 706 707 708 709 712 713 714 715 716 717 718 719 720
    721 724 725 726 727 731 732 734 737 740 742 743 747 753 754 757 758 760
    762 763 765 767 769 770 771 772 773 774 775 778 779 780 781 782 784 785
    786 787
    801 802 803 804 805 806 807 808 809 810 812 813 814 815 816 817 818 819
    820 825 826 828 829 830 831 832 838 839 840 843 845 847 848 849 850 854
    856 857 858 859 860 862 863 864 865 867 868 869 870 872 873 876 878
    901 902 903 904 905 906 907 908 909 910 912 913 914 915 916 917 918 919
    920 925 928 929 930 931 934 936 937 938 939 940 941 943 945 947 948 949
    951 952 954 956 959 970 971 972 973 978 979 980 983 984 985 986 989
    """
)

# Easily recognisable codes (NXX with repeated digits), held in reserve.
EASILY_RECOGNIZABLE_CODES: frozenset[str] = _codes(
    """
    200 222 233 244 255 266 277 288 299 300 322 333 344 355 366 377 388 399
    400 422 433 444 455 466 477 488 499 500 522 533 544 566 577 588 599 600
    622 633 644 655 666 677 688 699 700 722 733 744 755 766 777 788 799 822
    899 922 933 944 955 966 977 999
    """
)

SERVICE_CODES: frozenset[str] = _codes("211 311 411 511 611 711 811 911")
TEST_CODES: frozenset[str] = _codes("555")
TOLL_FREE_CODES: frozenset[str] = _codes("800 833 844 855 866 877 888")
PREMIUM_CODES: frozenset[str] = _codes("900 988")

RESERVED_AREA_CODES: frozenset[str] = (
    EASILY_RECOGNIZABLE_CODES
    | SERVICE_CODES
    | TEST_CODES
    | TOLL_FREE_CODES
    | PREMIUM_CODES
)


def is_assignable_area_code(
    area_code: str, allow_list: frozenset[str] = frozenset()
) -> bool:
    """True if the area code may appear on a customer record.

    Allow-listed codes (development/test numbers such as 555) pass even when
    reserved.  Otherwise the code must be geographic and not reserved.
    """
    if area_code in allow_list:
        return True
    if area_code in RESERVED_AREA_CODES:
        return False
    return area_code in GEOGRAPHIC_AREA_CODES
