"""Operator keyword catalog used to classify profiled MongoDB commands.

Two static, disjoint sets of ``$``-prefixed operator names:

    SUPPORTED_KEYWORDS      -- operators the target MongoDB-compatible API
                               accepts as-is.
    NOT_SUPPORTED_KEYWORDS  -- operators that need a rewrite before the
                               workload can move.

Any other ``$`` token (field paths such as ``"$name"`` used as *values* never
reach the catalog, only object *keys* do) is "unrecognized" and is neither
counted nor reported.

Both sets are case-sensitive and must never overlap; ``tests/test_keywords.py``
checks that.
"""

OPERATOR_PREFIX = "$"

SUPPORTED_KEYWORDS: frozenset[str] = frozenset({
    # Comparison / logical
    "$gt", "$gte", "$lt", "$lte", "$ne", "$eq", "$in", "$nin",
    "$and", "$not", "$or", "$nor",
    # Element / evaluation
    "$exists", "$type", "$regex", "$text",
    # Geospatial
    "$near", "$nearSphere",
    # Array
    "$size", "$slice", "$arrayElemAt",
    # Cursor hints
    "$natural",
    # Update
    "$inc", "$min", "$max", "$rename", "$set", "$addToSet", "$pop", "$pull",
    "$push", "$pullAll", "$each", "$position", "$sort", "$bit",
    # Aggregation stages
    "$count", "$limit", "$match", "$skip", "$group", "$project",
})

NOT_SUPPORTED_KEYWORDS: frozenset[str] = frozenset({
    # Query operators
    "$expr", "$jsonSchema", "$mod", "$geoIntersects", "$geoWithin", "$box",
    "$center", "$centerSphere", "$maxDistance", "$minDistance", "$polygon",
    "$all", "$bitsAllClear", "$bitsAllSet", "$bitsAnyClear", "$bitsAnySet",
    "$elemMatch", "$rand",
    # Update operators
    "$currentData", "$mul", "$setOnInsert",
    # Aggregation stages
    "$addFields", "$bucket", "$bucketAuto", "$changeStream", "$collStats",
    "$currentOp", "$densify", "$documents", "$facet", "$fill", "$geoNear",
    "$graphLookup", "$indexStats", "$lookup", "$merge", "$out", "$redact",
    "$replaceRoot", "$replaceWith", "$sample", "$search", "$searchMeta",
    "$setWindowFields", "$sortByCount", "$unionWith", "$unset", "$unwind",
    # Accumulators / window functions
    "$accumulator", "$avg", "$bottom", "$bottomN", "$covariancePop",
    "$covarianceSamp", "$denseRank", "$derivative", "$documentNumber",
    "$expMovingAvg", "$first", "$firstN", "$integral", "$last", "$lastN",
    "$linearFill", "$maxN", "$minN", "$rank", "$shift", "$stsDevPop",
    "$stsDevSamp", "$sum", "$top", "$topN",
    # Arithmetic / trigonometry
    "$abs", "$acos", "$acosh", "$add", "$asin", "$asinh", "$atan", "$atan2",
    "$atanh", "$ceil", "$cosh", "$degreesToRadians", "$divide", "$exp",
    "$floor", "$ln", "$log", "$log10", "$multiply", "$pow",
    "$radiansToDegrees", "$round", "$sin", "$sinh", "$sqrt", "$subtract",
    "$tan", "$tanh", "$trunc",
    # Array / set expressions
    "$allElementsTrue", "$anyElementTrue", "$arrayToObject", "$concatArrays",
    "$filter", "$indexOfArray", "$isArray", "$map", "$objectToArray",
    "$range", "$reduce", "$reverseArray", "$setDifference", "$setEquals",
    "$setIntersection", "$setIsSubset", "$setUnion", "$sortArray", "$zip",
    # Conditional / misc expressions
    "$cmp", "$cond", "$ifNull", "$let", "$literal", "$meta", "$switch",
    "$function", "$getField", "$setField", "$unsetField", "$mergeObjects",
    "$sampleRate", "$binarySize", "$bsonSize", "$isNumber",
    # String expressions
    "$concat", "$indexOfBytes", "$indexOfCP", "$ltrim", "$regexFind",
    "$regexFindAll", "$regexMatch", "$replaceOne", "$replaceAll", "$rtrim",
    "$split", "$strLenBytes", "$strcasecmp", "$strLenCP", "$substr",
    "$substrCP", "$toLower", "$toUpper", "$trim",
    # Type conversion
    "$convert", "$toBool", "$toDate", "$toDecimal", "$toDouble", "$toInt",
    "$toLong", "$toObjectId", "$toString",
    # Date / timestamp expressions
    "$dateAdd", "$dateDiff", "$dateFromParts", "$dateFromString",
    "$datesubtract", "$dateToParts", "$dateToString", "$dateTrunc",
    "$dayOfMonth", "$dayOfWeek", "$dayOfYear", "$hour", "$isoDayOfWeek",
    "$isoWeek", "$isoWeekYear", "$millisecond", "$minute", "$month",
    "$second", "$week", "$year", "$tsIncrement", "$tsSecond",
})


def keyword_class(token: str) -> str | None:
    """Return which catalog set *token* belongs to.

    Args:
        token: Object key found in a profiled command.

    Returns:
        ``"supported"``, ``"not_supported"``, or ``None`` when the token is
        not an operator or is not in either set.
    """
    if not token.startswith(OPERATOR_PREFIX):
        return None
    if token in SUPPORTED_KEYWORDS:
        return "supported"
    if token in NOT_SUPPORTED_KEYWORDS:
        return "not_supported"
    return None
