from starview.cli import main

raise SystemExit(main())
