# DEPENDENCIES
from typing import Any
from typing import Dict
from typing import List


class PlaybookRules:
    """
    Seed negotiation playbook for NDAs: clause types, tiered rules per party perspective,
    and the vocabularies used by the feature extractor
    """
    CLAUSE_TYPES           = [{"id"              : "confidentiality_definition",
                               "name"            : "Definition of Confidential Information",
                               "display_order"   : 1,
                               "exemplar_text"   : "Confidential Information means any and all information disclosed by the Disclosing Party to the Receiving Party, whether orally, in writing, or in any other form, including but not limited to proprietary information, trade secrets, and know-how.",
                               "patterns"        : [r'confidential\s+information\s+(?:means|includes|shall\s+mean)[^.]+\.',
                                                    r'"confidential\s+information"\s+(?:means|includes)[^.]+\.',
                                                    r'for\s+purposes\s+of\s+this\s+agreement[^.]*confidential[^.]+\.',
                                                   ],
                               "keywords"        : ["confidential information", "proprietary information", "trade secret", "defined as"],
                               "header_patterns" : [r'\n\s*\d+\.?\s*definitions?\s*\n',
                                                    r'\n\s*(?:article|section)\s+\w+\.?\s*definitions?\s*\n',
                                                   ],
                               "position_hint"   : "early",
                              },
                              {"id"              : "confidentiality_duration",
                               "name"            : "Duration of Confidentiality Obligations",
                               "display_order"   : 2,
                               "exemplar_text"   : "The obligations of the Receiving Party under this Agreement shall survive termination of this Agreement and continue for a period of five (5) years from the date of disclosure.",
                               "patterns"        : [r'(?:period|term)\s+of\s+\w+\s+(?:\(\d+\)\s+)?(?:years?|months?)[^.]*\.',
                                                    r'survive\s+(?:termination|expiration)[^.]*\.',
                                                    r'remain\s+in\s+effect\s+(?:for|until)[^.]+\.',
                                                    r'(?:continue|terminate)[^.]*\b\d+\s+years?[^.]*\.',
                                                   ],
                               "keywords"        : ["survive", "perpetuity", "expiration", "years from", "term of"],
                               "header_patterns" : [r'\n\s*\d+\.?\s*term\s*\n',
                                                    r'\n\s*\d+\.?\s*duration\s*\n',
                                                   ],
                               "position_hint"   : None,
                              },
                              {"id"              : "governing_law",
                               "name"            : "Governing Law and Jurisdictions",
                               "display_order"   : 3,
                               "exemplar_text"   : "This Agreement shall be governed by and construed in accordance with the laws of the jurisdiction, without regard to its conflict of law provisions.",
                               "patterns"        : [r'governed\s+by\s+(?:the\s+)?laws?\s+of[^.]+\.',
                                                    r'exclusive\s+jurisdiction\s+of\s+(?:the\s+)?courts?[^.]+\.',
                                                    r'disputes?\s+(?:shall|will)\s+be\s+(?:resolved|settled)[^.]+\.',
                                                   ],
                               "keywords"        : ["governed", "jurisdiction", "applicable law", "disputes", "courts", "venue", "arbitration"],
                               "header_patterns" : [r'\n\s*\d+\.?\s*governing\s+law\s*\n',
                                                    r'\n\s*\d+\.?\s*applicable\s+law\s*\n',
                                                   ],
                               "position_hint"   : "late",
                              },
                             ]

    # Within each (clause type, perspective) the preferred rule is the root, the fallback
    # refines it and the unacceptable rule sits below the fallback
    RULES                  = [# Definition - receiving
                              {"id"               : "def-rcv-preferred",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "receiving",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 3,
                               "rule_text"        : "Confidential Information limited to specifically marked documents containing proprietary data with comprehensive standard exceptions",
                               "keywords"         : ["specifically marked", "clearly designated", "proprietary", "commercially sensitive", "standard exceptions", "publicly available", "independently developed", "required by law"],
                               "guidance_notes"   : "Receiving party wants narrow scope with broad exceptions to minimize restrictions on future operations",
                               "example_language" : "\"Confidential Information\" means information specifically marked as 'Confidential' or 'Proprietary' by the disclosing party, excluding information that is: (a) publicly available, (b) independently developed, (c) already known to receiving party, or (d) required by law to be disclosed",
                               "rewriting_prompt" : "Rewrite this confidentiality definition to favor the receiving party by narrowing the scope to only marked information and including comprehensive exceptions for public information, independent development, and legal requirements",
                               "ml_features"      : {"patterns"             : [r'marked\s+as\s+.?confidential', r'publicly\s+available', r'independently\s+developed'],
                                                     "sentiment_indicators" : ["excluding", "exceptions", "only"],
                                                    },
                              },
                              {"id"               : "def-rcv-fallback",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "receiving",
                               "tier"             : "fallback",
                               "parent_id"        : "def-rcv-preferred",
                               "severity"         : 4,
                               "rule_text"        : "Confidential Information includes written materials and oral disclosures with reasonable exceptions for public domain and pre-existing knowledge",
                               "keywords"         : ["written materials", "oral disclosures", "reasonable person", "public domain", "pre-existing knowledge", "business information"],
                               "guidance_notes"   : "Compromise position when marked-only approach is rejected by disclosing party",
                               "example_language" : "\"Confidential Information\" includes all written materials and oral information disclosed during due diligence that a reasonable person would understand to be confidential, excluding publicly available information and information already known to the receiving party",
                               "rewriting_prompt" : "Rewrite to include both written and oral information while maintaining reasonable exceptions for public information and pre-existing knowledge",
                               "ml_features"      : {"patterns"             : [r'reasonable\s+person', r'oral(?:ly)?'],
                                                     "sentiment_indicators" : ["reasonable"],
                                                    },
                              },
                              {"id"               : "def-rcv-unacceptable",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "receiving",
                               "tier"             : "unacceptable",
                               "parent_id"        : "def-rcv-fallback",
                               "severity"         : 5,
                               "rule_text"        : "All information disclosed deemed confidential with minimal or no exceptions",
                               "keywords"         : ["all information", "everything disclosed", "no exceptions", "minimal exceptions", "indefinite protection", "unrestricted scope"],
                               "guidance_notes"   : "Unacceptable - creates unlimited liability and operational restrictions",
                               "example_language" : "All information, data, materials, or communications disclosed in any form shall be deemed Confidential Information",
                               "rewriting_prompt" : "This overly broad definition needs restructuring to include specific categories, clear exceptions, and reasonable limitations that protect the receiving party's ability to operate independently",
                               "ml_features"      : {"patterns"             : [r'all\s+information', r'in\s+any\s+form', r'deemed\s+confidential'],
                                                     "sentiment_indicators" : ["all", "any"],
                                                    },
                              },
                              # Definition - disclosing
                              {"id"               : "def-dsc-preferred",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "disclosing",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 5,
                               "rule_text"        : "All shared information presumed confidential with limited standard exceptions only",
                               "keywords"         : ["all information", "presumed confidential", "shared", "communicated", "limited exceptions", "competitive advantage", "business operations"],
                               "guidance_notes"   : "Disclosing party wants maximum protection of all shared information",
                               "example_language" : "\"Confidential Information\" means all information disclosed in any form including financial data, customer lists, business strategies, operational procedures, and technical specifications, with exceptions only for information that is publicly available through no breach of confidentiality",
                               "rewriting_prompt" : "Rewrite to provide maximum protection for the disclosing party by including all forms of information with minimal exceptions limited only to truly public information",
                               "ml_features"      : {"patterns"             : [r'all\s+information', r'customer\s+lists', r'in\s+any\s+form'],
                                                     "sentiment_indicators" : ["all", "including"],
                                                    },
                              },
                              {"id"               : "def-dsc-fallback",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "disclosing",
                               "tier"             : "fallback",
                               "parent_id"        : "def-dsc-preferred",
                               "severity"         : 4,
                               "rule_text"        : "Material business information with standard exceptions for public domain and independently developed information",
                               "keywords"         : ["material business information", "significant", "standard exceptions", "public domain", "independently developed", "third party rights"],
                               "guidance_notes"   : "Compromise when all-information approach is rejected",
                               "example_language" : "\"Confidential Information\" means material business information relating to operations, finances, customers, or strategies, excluding information that is publicly available or independently developed by the receiving party",
                               "rewriting_prompt" : "Rewrite to focus on material business information while allowing standard exceptions, balancing comprehensive protection with reasonable limitations",
                               "ml_features"      : {},
                              },
                              {"id"               : "def-dsc-unacceptable",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "disclosing",
                               "tier"             : "unacceptable",
                               "parent_id"        : "def-dsc-fallback",
                               "severity"         : 2,
                               "rule_text"        : "Only information specifically marked and designated as confidential with broad exceptions",
                               "keywords"         : ["only marked", "specifically designated", "broad exceptions", "narrow scope", "minimal protection", "unrestricted use"],
                               "guidance_notes"   : "Unacceptable - provides insufficient protection for sensitive business information",
                               "example_language" : "Only information bearing a 'Confidential' stamp and specifically designated in writing as confidential",
                               "rewriting_prompt" : "This overly narrow definition must be expanded to include various forms of sensitive business information beyond marked documents, with reasonable rather than broad exceptions",
                               "ml_features"      : {"patterns"             : [r'only\s+information\s+(?:bearing|marked)', r'designated\s+in\s+writing'],
                                                     "sentiment_indicators" : ["only"],
                                                    },
                              },
                              # Definition - mutual
                              {"id"               : "def-mut-preferred",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "mutual",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 4,
                               "rule_text"        : "Business information disclosed for evaluation purposes with balanced exceptions for both parties",
                               "keywords"         : ["business information", "evaluation purposes", "balanced", "both parties", "mutual protection", "commercially sensitive", "fair exceptions"],
                               "guidance_notes"   : "Balanced approach protecting both parties equally",
                               "example_language" : "\"Confidential Information\" means business information disclosed by either party for evaluation of potential collaboration, including financial data, business plans, and operational information, with standard exceptions for publicly available information and pre-existing knowledge",
                               "rewriting_prompt" : "Rewrite to ensure balanced protection for both parties with equal obligations and reciprocal exceptions that protect each party's legitimate interests",
                               "ml_features"      : {"patterns"             : [r'either\s+party', r'both\s+parties'],
                                                     "sentiment_indicators" : ["mutual", "reciprocal"],
                                                    },
                              },
                              {"id"               : "def-mut-fallback",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "mutual",
                               "tier"             : "fallback",
                               "parent_id"        : "def-mut-preferred",
                               "severity"         : 3,
                               "rule_text"        : "Commercially sensitive information with reasonable exceptions applicable to both parties",
                               "keywords"         : ["commercially sensitive", "reasonable exceptions", "both parties", "mutual", "proportionate", "fair treatment"],
                               "guidance_notes"   : "Compromise position with proportionate protection",
                               "example_language" : "\"Confidential Information\" means commercially sensitive information that would not ordinarily be shared with third parties, with exceptions for information that is publicly available or developed independently by either party",
                               "rewriting_prompt" : "Rewrite to focus on commercially sensitive information with proportionate exceptions that treat both parties fairly",
                               "ml_features"      : {},
                              },
                              {"id"               : "def-mut-unacceptable",
                               "clause_type_id"   : "confidentiality_definition",
                               "perspective"      : "mutual",
                               "tier"             : "unacceptable",
                               "parent_id"        : "def-mut-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Asymmetric definition favoring one party or creating unbalanced obligations",
                               "keywords"         : ["asymmetric", "unbalanced", "favoring one party", "unequal treatment", "disproportionate", "unfair advantage"],
                               "guidance_notes"   : "Any definition that creates unfair advantage for one party is unacceptable",
                               "example_language" : "\"Confidential Information\" means all information disclosed by Party A but only marked information disclosed by Party B",
                               "rewriting_prompt" : "This unbalanced definition must be rewritten to provide equal protection and obligations for both parties with symmetric treatment of confidential information",
                               "ml_features"      : {"patterns"             : [r'party\s+a\b[^.]*\bbut\s+only\b[^.]*party\s+b'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              # Duration - receiving
                              {"id"               : "dur-rcv-preferred",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "receiving",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 2,
                               "rule_text"        : "3 years maximum duration with automatic return/destruction of information",
                               "keywords"         : ["3 years", "three (3) years", "maximum duration", "automatic return", "destruction", "finite term", "clear endpoint"],
                               "guidance_notes"   : "Receiving party wants finite, reasonable timeframe with clear information disposal requirements",
                               "example_language" : "Confidentiality obligations shall terminate 3 years from the date of disclosure, whereupon all confidential information shall be returned or destroyed at the disclosing party's option",
                               "rewriting_prompt" : "Rewrite to establish a clear 3-year maximum term with automatic information return/destruction obligations that provide a clear endpoint for receiving party obligations",
                               "ml_features"      : {"patterns"             : [r'\b(?:3|three)\s+(?:\(3\)\s+)?years?', r'returned\s+or\s+destroyed'],
                                                     "sentiment_indicators" : ["terminate"],
                                                    },
                              },
                              {"id"               : "dur-rcv-fallback",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "receiving",
                               "tier"             : "fallback",
                               "parent_id"        : "dur-rcv-preferred",
                               "severity"         : 3,
                               "rule_text"        : "5 years duration with option to return or retain information for legal purposes",
                               "keywords"         : ["5 years", "five (5) years", "option to return", "retain", "legal purposes", "compliance", "reasonable term"],
                               "guidance_notes"   : "Compromise when 3-year term is rejected",
                               "example_language" : "Confidentiality obligations shall continue for 5 years from disclosure, with receiving party having the option to return information or retain copies for legal compliance purposes",
                               "rewriting_prompt" : "Rewrite to provide a 5-year term while allowing retention for legitimate legal and compliance purposes",
                               "ml_features"      : {"patterns"             : [r'\b(?:5|five)\s+(?:\(5\)\s+)?years?', r'retain\s+copies'],
                                                     "sentiment_indicators" : ["option"],
                                                    },
                              },
                              {"id"               : "dur-rcv-unacceptable",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "receiving",
                               "tier"             : "unacceptable",
                               "parent_id"        : "dur-rcv-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Indefinite duration or perpetual confidentiality obligations",
                               "keywords"         : ["indefinite", "perpetual", "forever", "permanent", "no expiration", "unlimited duration", "in perpetuity"],
                               "guidance_notes"   : "Unacceptable - creates unlimited long-term liability",
                               "example_language" : "Confidentiality obligations shall continue in perpetuity",
                               "rewriting_prompt" : "This indefinite term must be revised to include a specific time limit (3-7 years) with clear termination conditions to limit long-term liability",
                               "ml_features"      : {"patterns"             : [r'perpetu', r'indefinite'],
                                                     "sentiment_indicators" : ["never", "forever"],
                                                    },
                              },
                              # Duration - disclosing
                              {"id"               : "dur-dsc-preferred",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "disclosing",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 5,
                               "rule_text"        : "Indefinite duration for trade secrets and commercially sensitive information",
                               "keywords"         : ["indefinite duration", "trade secrets", "commercially sensitive", "perpetual protection", "no time limit", "competitive advantage"],
                               "guidance_notes"   : "Disclosing party wants maximum protection duration for valuable information",
                               "example_language" : "Confidentiality obligations shall continue indefinitely with respect to trade secrets and for 10 years for other confidential information",
                               "rewriting_prompt" : "Rewrite to provide maximum protection duration, distinguishing between trade secrets (indefinite) and other confidential information (long-term)",
                               "ml_features"      : {"patterns"             : [r'indefinitely', r'trade\s+secrets?'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              {"id"               : "dur-dsc-fallback",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "disclosing",
                               "tier"             : "fallback",
                               "parent_id"        : "dur-dsc-preferred",
                               "severity"         : 4,
                               "rule_text"        : "7-10 years duration with indefinite protection for trade secrets only",
                               "keywords"         : ["7 years", "10 years", "trade secrets only", "long-term protection", "competitive information"],
                               "guidance_notes"   : "Compromise accepting a finite term for most information but retaining indefinite protection for true trade secrets",
                               "example_language" : "Confidentiality obligations shall continue for 7 years, except for trade secrets which shall remain confidential indefinitely",
                               "rewriting_prompt" : "Rewrite to provide long-term protection (7-10 years) for confidential information while maintaining indefinite protection specifically for legitimate trade secrets",
                               "ml_features"      : {"patterns"             : [r'\b(?:7|seven|10|ten)\s+(?:\(\d+\)\s+)?years?'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              {"id"               : "dur-dsc-unacceptable",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "disclosing",
                               "tier"             : "unacceptable",
                               "parent_id"        : "dur-dsc-fallback",
                               "severity"         : 2,
                               "rule_text"        : "3 years or less duration with broad information return/destruction requirements",
                               "keywords"         : ["2 years", "3 years or less", "short duration", "broad destruction", "immediate return", "limited protection"],
                               "guidance_notes"   : "Unacceptable - insufficient time to protect competitive advantage",
                               "example_language" : "Confidentiality obligations terminate after 2 years with mandatory destruction of all information",
                               "rewriting_prompt" : "This short-term protection is inadequate and must be extended to at least 5-7 years to provide meaningful protection for business information",
                               "ml_features"      : {"patterns"             : [r'\b(?:1|one|2|two)\s+(?:\(\d\)\s+)?years?', r'mandatory\s+destruction'],
                                                     "sentiment_indicators" : ["terminate"],
                                                    },
                              },
                              # Duration - mutual
                              {"id"               : "dur-mut-preferred",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "mutual",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 3,
                               "rule_text"        : "5 years duration with balanced return/retention options for both parties",
                               "keywords"         : ["5 years", "five (5) years", "balanced", "return or retention", "both parties", "mutual", "reciprocal"],
                               "guidance_notes"   : "Balanced timeframe providing reasonable protection for both parties",
                               "example_language" : "Confidentiality obligations shall continue for 5 years from disclosure, with both parties having equal rights regarding information return or retention for business purposes",
                               "rewriting_prompt" : "Rewrite to provide a balanced 5-year term with equal treatment for both parties regarding information handling and retention rights",
                               "ml_features"      : {"patterns"             : [r'\b(?:5|five)\s+(?:\(5\)\s+)?years?', r'both\s+parties'],
                                                     "sentiment_indicators" : ["equal"],
                                                    },
                              },
                              {"id"               : "dur-mut-fallback",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "mutual",
                               "tier"             : "fallback",
                               "parent_id"        : "dur-mut-preferred",
                               "severity"         : 4,
                               "rule_text"        : "3-7 years duration with different terms for different types of information",
                               "keywords"         : ["different terms", "different types", "information categories", "tiered approach", "trade secrets"],
                               "guidance_notes"   : "Compromise approach with differentiated protection based on information sensitivity",
                               "example_language" : "Trade secrets: 7 years; financial information: 5 years; general business information: 3 years",
                               "rewriting_prompt" : "Rewrite to provide differentiated protection periods based on information type while maintaining balanced treatment for both parties",
                               "ml_features"      : {},
                              },
                              {"id"               : "dur-mut-unacceptable",
                               "clause_type_id"   : "confidentiality_duration",
                               "perspective"      : "mutual",
                               "tier"             : "unacceptable",
                               "parent_id"        : "dur-mut-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Asymmetric duration terms favoring one party over the other",
                               "keywords"         : ["asymmetric", "unequal terms", "favoring one party", "different obligations", "unfair duration", "imbalanced protection"],
                               "guidance_notes"   : "Any duration terms that create unfair advantage are unacceptable",
                               "example_language" : "Party A's information protected for 10 years; Party B's information protected for 3 years",
                               "rewriting_prompt" : "This unbalanced approach must be rewritten to provide equal protection periods for both parties with symmetric obligations and rights",
                               "ml_features"      : {"patterns"             : [r'party\s+a.{0,80}years?.{0,40}party\s+b'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              # Governing law - receiving
                              {"id"               : "gov-rcv-preferred",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "receiving",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 3,
                               "rule_text"        : "Receiving party's jurisdiction and laws with convenient dispute resolution location",
                               "keywords"         : ["receiving party jurisdiction", "home jurisdiction", "convenient location", "familiar laws", "local courts", "reduced legal costs"],
                               "guidance_notes"   : "Receiving party wants disputes handled in familiar jurisdiction with predictable outcomes",
                               "example_language" : "This Agreement shall be governed by the laws of [Receiving Party's Jurisdiction] and any disputes shall be resolved in the courts of [Receiving Party's Location]",
                               "rewriting_prompt" : "Rewrite to establish the receiving party's home jurisdiction and governing law to ensure familiar legal framework and convenient dispute resolution location",
                               "ml_features"      : {},
                              },
                              {"id"               : "gov-rcv-fallback",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "receiving",
                               "tier"             : "fallback",
                               "parent_id"        : "gov-rcv-preferred",
                               "severity"         : 4,
                               "rule_text"        : "Neutral jurisdiction (Singapore) with established commercial law framework",
                               "keywords"         : ["neutral jurisdiction", "Singapore", "established framework", "commercial law", "international arbitration", "business-friendly"],
                               "guidance_notes"   : "Compromise on neutral, business-friendly jurisdiction when home jurisdiction is rejected",
                               "example_language" : "This Agreement shall be governed by Singapore law with disputes resolved through Singapore International Arbitration Centre (SIAC) arbitration",
                               "rewriting_prompt" : "Rewrite to establish Singapore as the neutral governing jurisdiction with its established commercial law framework and recognized international arbitration procedures",
                               "ml_features"      : {"patterns"             : [r'singapore', r'\bsiac\b'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              {"id"               : "gov-rcv-unacceptable",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "receiving",
                               "tier"             : "unacceptable",
                               "parent_id"        : "gov-rcv-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Disclosing party's foreign jurisdiction with unfamiliar legal framework",
                               "keywords"         : ["foreign jurisdiction", "unfamiliar laws", "disclosing party jurisdiction", "inconvenient forum", "unknown legal system", "higher legal costs"],
                               "guidance_notes"   : "Unacceptable - creates legal uncertainty and higher dispute resolution costs",
                               "example_language" : "Governed by laws of [Disclosing Party's Remote Jurisdiction] with exclusive jurisdiction in [Inconvenient Location]",
                               "rewriting_prompt" : "This unfavorable jurisdiction clause must be revised to either the receiving party's home jurisdiction or a neutral, business-friendly jurisdiction like Singapore",
                               "ml_features"      : {},
                              },
                              # Governing law - disclosing
                              {"id"               : "gov-dsc-preferred",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "disclosing",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 4,
                               "rule_text"        : "Disclosing party's jurisdiction with strong confidentiality law enforcement",
                               "keywords"         : ["disclosing party jurisdiction", "strong enforcement", "confidentiality laws", "protective legal framework", "local courts", "familiar procedures"],
                               "guidance_notes"   : "Disclosing party wants jurisdiction with strong protection for confidential information",
                               "example_language" : "This Agreement shall be governed by the laws of [Disclosing Party's Jurisdiction] with exclusive jurisdiction in the courts of [Disclosing Party's Location] for enforcement of confidentiality obligations",
                               "rewriting_prompt" : "Rewrite to establish the disclosing party's home jurisdiction with its strong legal framework for protecting confidential information and trade secrets",
                               "ml_features"      : {},
                              },
                              {"id"               : "gov-dsc-fallback",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "disclosing",
                               "tier"             : "fallback",
                               "parent_id"        : "gov-dsc-preferred",
                               "severity"         : 3,
                               "rule_text"        : "Established commercial jurisdiction (Singapore/Hong Kong) with strong IP protection",
                               "keywords"         : ["commercial jurisdiction", "Singapore", "Hong Kong", "strong IP protection", "established precedents", "business courts"],
                               "guidance_notes"   : "Compromise on established commercial center with good IP protection when home jurisdiction is rejected",
                               "example_language" : "Governed by Singapore law with disputes resolved in Singapore courts, known for strong intellectual property and confidentiality protection",
                               "rewriting_prompt" : "Rewrite to use an established commercial jurisdiction like Singapore with strong intellectual property protection and clear precedents for confidentiality enforcement",
                               "ml_features"      : {"patterns"             : [r'singapore|hong\s+kong'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              {"id"               : "gov-dsc-unacceptable",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "disclosing",
                               "tier"             : "unacceptable",
                               "parent_id"        : "gov-dsc-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Jurisdiction with weak confidentiality protection or enforcement",
                               "keywords"         : ["weak protection", "poor enforcement", "limited remedies", "unfavorable precedents", "inadequate legal framework", "uncertain outcomes"],
                               "guidance_notes"   : "Unacceptable - inadequate protection for confidential information",
                               "example_language" : "Governed by jurisdiction with limited trade secret protection and weak enforcement mechanisms",
                               "rewriting_prompt" : "This inadequate jurisdiction must be changed to one with strong confidentiality laws, established IP protection, and reliable enforcement mechanisms",
                               "ml_features"      : {},
                              },
                              # Governing law - mutual
                              {"id"               : "gov-mut-preferred",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "mutual",
                               "tier"             : "preferred",
                               "parent_id"        : None,
                               "severity"         : 3,
                               "rule_text"        : "Neutral commercial jurisdiction (Singapore) with balanced dispute resolution",
                               "keywords"         : ["neutral jurisdiction", "Singapore", "balanced", "commercial law", "equal treatment", "established procedures", "international arbitration"],
                               "guidance_notes"   : "Neutral jurisdiction providing equal treatment and established commercial law framework",
                               "example_language" : "This Agreement shall be governed by Singapore law with disputes resolved through Singapore International Arbitration Centre, ensuring neutral and balanced treatment of both parties",
                               "rewriting_prompt" : "Rewrite to establish Singapore as the neutral governing jurisdiction with balanced dispute resolution procedures that treat both parties equally",
                               "ml_features"      : {"patterns"             : [r'singapore', r'neutral'],
                                                     "sentiment_indicators" : ["balanced"],
                                                    },
                              },
                              {"id"               : "gov-mut-fallback",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "mutual",
                               "tier"             : "fallback",
                               "parent_id"        : "gov-mut-preferred",
                               "severity"         : 4,
                               "rule_text"        : "International arbitration under established rules with seat in major commercial center",
                               "keywords"         : ["international arbitration", "established rules", "major commercial center", "ICC", "SIAC", "LCIA", "neutral venue"],
                               "guidance_notes"   : "Compromise using international arbitration when parties cannot agree on governing law",
                               "example_language" : "Disputes resolved through ICC arbitration seated in Singapore, applying principles of international commercial law",
                               "rewriting_prompt" : "Rewrite to provide international arbitration under established rules in a neutral commercial center, ensuring fair treatment for both parties",
                               "ml_features"      : {"patterns"             : [r'\b(?:icc|siac|lcia)\b', r'arbitration'],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                              {"id"               : "gov-mut-unacceptable",
                               "clause_type_id"   : "governing_law",
                               "perspective"      : "mutual",
                               "tier"             : "unacceptable",
                               "parent_id"        : "gov-mut-fallback",
                               "severity"         : 5,
                               "rule_text"        : "Forum selection that advantages one party or creates unequal treatment",
                               "keywords"         : ["advantages one party", "unequal treatment", "biased jurisdiction", "unfair forum", "preferential laws", "imbalanced procedures"],
                               "guidance_notes"   : "Any jurisdiction or dispute resolution mechanism that favors one party is unacceptable",
                               "example_language" : "Governed by Party A's home jurisdiction with Party A receiving preferential treatment in disputes",
                               "rewriting_prompt" : "This biased jurisdiction clause must be revised to provide neutral, balanced dispute resolution that treats both parties equally under established commercial law principles",
                               "ml_features"      : {"patterns"             : [r'preferential\s+treatment', r"party\s+a's\s+home"],
                                                     "sentiment_indicators" : [],
                                                    },
                              },
                             ]

    # Vocabularies for feature extraction
    LEGAL_TERMS            = ["confidential", "proprietary", "disclose", "disclosure", "obligation", "obligations", "agreement",
                              "party", "parties", "receiving", "disclosing", "information", "trade secret", "jurisdiction",
                              "governed", "arbitration", "termination", "breach", "remedy", "remedies", "indemnify",
                              "hereunder", "herein", "thereof", "notwithstanding", "pursuant", "survive",
                             ]

    MODAL_VERBS            = ["shall", "will", "must", "may", "should", "would", "could"]

    DEFINITION_INDICATORS  = ["means", "defined as", "includes", "refers to", "constitutes", "shall mean"]

    CROSS_REFERENCE_REGEX  = [r'\bsection\s+\d+(?:\.\d+)*', r'\bclause\s+\d+(?:\.\d+)*', r'\bparagraph\s+\d+(?:\.\d+)*',
                              r'\barticle\s+\d+', r'\bas\s+defined\b', r'\bschedule\s+[a-z0-9]+\b',
                             ]

    POSITIVE_TERMS         = ["agree", "agrees", "accept", "approve", "permit", "permitted", "allow", "may", "entitled"]

    NEGATIVE_TERMS         = ["not", "never", "exclude", "excluding", "prohibit", "prohibited", "restrict", "restricted", "shall not", "no"]

    # Negotiation guidance per clause type and tier
    NEGOTIATION_GUIDANCE   = {"confidentiality_definition" : {"preferred"    : ["Confirm the exceptions list covers public, prior-known and independently developed information"],
                                                              "fallback"     : ["Narrow the definition toward marked or reasonably identifiable information",
                                                                                "Insist on the standard exceptions"],
                                                              "unacceptable" : ["Reject blanket definitions and propose specific categories with exceptions"],
                                                              "missing"      : ["Add a definition of Confidential Information before signing"],
                                                             },
                              "confidentiality_duration"   : {"preferred"    : ["Keep the finite term and the return or destruction mechanics"],
                                                              "fallback"     : ["Trade a longer term for carve-outs limited to genuine trade secrets"],
                                                              "unacceptable" : ["Replace open-ended obligations with a fixed term of years"],
                                                              "missing"      : ["Agree an explicit confidentiality period"],
                                                             },
                              "governing_law"              : {"preferred"    : ["Confirm the chosen forum and enforcement route"],
                                                              "fallback"     : ["Propose a neutral seat with institutional arbitration rules"],
                                                              "unacceptable" : ["Reject one-sided forum selection and propose a neutral jurisdiction"],
                                                              "missing"      : ["Add governing law and dispute resolution provisions"],
                                                             },
                             }


    @classmethod
    def get_clause_types(cls) -> List[Dict[str, Any]]:
        return sorted(cls.CLAUSE_TYPES, key = lambda clause: clause["display_order"])


    @classmethod
    def get_rules(cls, clause_type_id: str = None, perspective: str = None) -> List[Dict[str, Any]]:
        """
        Seed rules, optionally filtered by clause type and perspective
        """
        return [rule for rule in cls.RULES
                if ((clause_type_id is None) or (rule["clause_type_id"] == clause_type_id))
                and ((perspective is None) or (rule["perspective"] == perspective))]


    @classmethod
    def get_negotiation_guidance(cls, clause_type_id: str, tier: str) -> List[str]:
        return list(cls.NEGOTIATION_GUIDANCE.get(clause_type_id, {}).get(tier, []))
